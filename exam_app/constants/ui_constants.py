"""Qt UI constants used across candidate widgets."""

WINDOW_TITLE: str = "ExamQt Candidate"
STATE_REFRESH_INTERVAL_MS: int = 250

TYPE_SELECTION_TITLE: str = "Choose an exam"
TYPE_SELECTION_EMPTY: str = "No exams are available right now."
START_EXAM_BUTTON: str = "Start Exam"

TOKEN_DIALOG_TITLE: str = "Exam access token"
TOKEN_DIALOG_PROMPT: str = "Enter the one-time access token you received from an examiner."
TOKEN_DIALOG_VERIFY: str = "Verify"
TOKEN_DIALOG_CANCEL: str = "Cancel"
TOKEN_EMPTY_MESSAGE: str = "Please enter an access token."

NEXT_QUESTION_BUTTON: str = "Next Question"
FINISH_EXAM_BUTTON: str = "Finish Exam"
RETRY_SUBMISSION_BUTTON: str = "Retry Submission"
BACK_TO_SELECTION_BUTTON: str = "Back to Exams"

QUESTION_COUNTER_TEMPLATE: str = "Question {current} of {total}"
TIMER_TEMPLATE: str = "{seconds}s"
MULTIPLE_CHOICE_HINT: str = "Select all answers that apply."

VIOLATION_TITLE: str = "Exam terminated"
VIOLATION_MESSAGE: str = (
    "You left the exam window. The attempt has been ended and submitted as failed."
)
SUBMISSION_FAILED_TITLE: str = "Submission failed"
CANNOT_START_TITLE: str = "Cannot start exam"

RESULT_PASSED: str = "Passed"
RESULT_FAILED: str = "Not passed"
RESULT_SCORE_TEMPLATE: str = "{score}/{total} ({percentage:.1f}%)"
RESULT_THRESHOLD_TEMPLATE: str = "Passing threshold: {threshold:.0f}%"

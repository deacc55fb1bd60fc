"""Static metadata describing ExamQt."""

APP_NAME = "ExamQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "ExamQt runs timed knowledge exams for department candidates. "
    "Each exam is drawn at random from the catalog, every question has its own countdown, "
    "and leaving the exam window ends the attempt."
)

HELP_TEXT = (
    "Exam catalogs are plain .txt files, one per exam type. The first block names the exam:\n\n"
    "EXAM: Trainee\nID: 1\nTHRESHOLD: 50\n\n"
    "Every following block is one question:\n\n"
    "Q: Which codes require backup?\n"
    "A: Code 1\nB: Code 2\nC: Code 3\nD: Code 4\n"
    "CORRECT: B, C\nTIMELIMIT: 45"
)

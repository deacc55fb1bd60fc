"""FastAPI server that exposes the candidate exam endpoints.

Candidates are identified by the X-Candidate-Id and X-Candidate-Name request
headers, taken as given. The privileged flag follows from that id through the
configured IdentityProvider, so the server must only be reachable from a
trusted exam network or behind a proxy that authenticates candidates and
sets these headers itself.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from threading import Thread
from typing import Iterator

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
import uvicorn

from exam_app.constants.about import APP_NAME, APP_VERSION
from exam_app.constants.network_constants import (
    CANDIDATE_ID_HEADER,
    CANDIDATE_NAME_HEADER,
    DEFAULT_HOST,
    DEFAULT_PORT,
)
from exam_app.core.errors import (
    AuthorizationError,
    EmptyPoolError,
    InvalidTransitionError,
    PersistenceError,
)
from exam_app.core.exam_manager import ExamManager
from exam_app.core.exam_session import ExamSession
from exam_app.core.markdown_math_renderer import renderer
from exam_app.core.models import Candidate, ExamType, SessionState, ViolationKind
from exam_app.core.services.countdown import timer_band

logger = logging.getLogger(__name__)

_CANDIDATE_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>ExamQt Candidate</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #f3f4f6; color: #1f2937; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; max-width: 48rem; margin-inline: auto; }
      .card { background: #fff; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.25rem 1rem rgba(0, 0, 0, 0.08); }
      .hidden { display: none; }
      button { border: none; border-radius: 0.5rem; padding: 0.75rem 1.25rem; font-size: 1rem; background: #2563eb; color: #fff; cursor: pointer; }
      button:disabled { opacity: 0.5; cursor: not-allowed; }
      .option { display: block; width: 100%; text-align: left; margin-bottom: 0.5rem; background: #e5e7eb; color: #1f2937; }
      .option.selected { background: #2563eb; color: #fff; }
      #timer.normal { color: #16a34a; } #timer.warning { color: #ca8a04; } #timer.critical { color: #dc2626; }
      #status { min-height: 1.25rem; color: #dc2626; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] }, svg: { fontCache: 'global' } };
    </script>
    <script defer src=\"https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js\"></script>
  </head>
  <body>
    <section class=\"card\" id=\"identity-card\">
      <h1>ExamQt</h1>
      <input id=\"candidate-id\" placeholder=\"Candidate ID\" />
      <input id=\"candidate-name\" placeholder=\"Display name\" />
      <button id=\"identity-button\">Continue</button>
    </section>
    <section class=\"card hidden\" id=\"selection-card\">
      <h2>Choose an exam</h2>
      <div id=\"exam-types\"></div>
    </section>
    <section class=\"card hidden\" id=\"token-card\">
      <h2 id=\"token-title\">Exam access token</h2>
      <input id=\"token-input\" placeholder=\"Access token\" />
      <button id=\"token-button\">Verify</button>
      <button id=\"token-cancel\">Cancel</button>
    </section>
    <section class=\"card hidden\" id=\"question-card\">
      <p><span id=\"counter\"></span> &middot; <strong id=\"timer\"></strong></p>
      <div id=\"prompt\"></div>
      <div id=\"options\"></div>
      <button id=\"next-button\" disabled>Next Question</button>
    </section>
    <section class=\"card hidden\" id=\"result-card\">
      <h2 id=\"verdict\"></h2>
      <p id=\"score\"></p>
      <button id=\"retry-button\" class=\"hidden\">Retry Submission</button>
      <button id=\"reset-button\">Back to Exams</button>
    </section>
    <p id=\"status\"></p>
    <script>
      const $ = (id) => document.getElementById(id);
      let identity = JSON.parse(sessionStorage.getItem('examqt_identity') || 'null');
      let state = null;

      function show(id, visible) { $(id).classList.toggle('hidden', !visible); }

      async function call(method, path, body) {
        const headers = { 'Content-Type': 'application/json',
          'X-Candidate-Id': identity.id, 'X-Candidate-Name': identity.name };
        const response = await fetch(path, { method, headers, body: body ? JSON.stringify(body) : undefined });
        const payload = await response.json();
        $('status').textContent = response.ok ? '' : (payload.detail || 'Request failed.');
        if (response.ok && payload.state) { render(payload); }
        return payload;
      }

      function render(payload) {
        state = payload;
        show('selection-card', payload.state === 'type_selection');
        show('token-card', payload.state === 'awaiting_authorization');
        show('question-card', payload.state === 'in_progress');
        show('result-card', payload.state === 'submitting' || payload.state === 'completed');
        if (payload.state === 'awaiting_authorization') {
          $('token-title').textContent = 'Access token for ' + payload.exam_type.name;
        }
        if (payload.state === 'in_progress' && payload.question) {
          const q = payload.question;
          $('counter').textContent = `Question ${payload.question_index + 1} of ${payload.question_count}`;
          $('timer').textContent = `${payload.time_remaining}s`;
          $('timer').className = payload.timer_band;
          if ($('prompt').dataset.qid !== String(q.question_id)) {
            $('prompt').dataset.qid = String(q.question_id);
            $('prompt').innerHTML = q.prompt_html;
            if (window.MathJax && MathJax.typeset) { MathJax.typeset(); }
          }
          const selected = Array.isArray(payload.answer) ? payload.answer : [payload.answer];
          $('options').innerHTML = '';
          q.options_html.forEach((html, index) => {
            const button = document.createElement('button');
            button.className = 'option' + (selected.includes(index) ? ' selected' : '');
            button.innerHTML = String.fromCharCode(65 + index) + '. ' + html;
            button.onclick = () => call('POST', '/session/answer', { option_index: index });
            $('options').appendChild(button);
          });
          $('next-button').disabled = !payload.can_advance;
          $('next-button').textContent = payload.question_index + 1 === payload.question_count ? 'Finish Exam' : 'Next Question';
        }
        if (payload.state === 'submitting') {
          $('verdict').textContent = 'Submitting…';
          $('score').textContent = payload.submission_error || '';
          show('retry-button', Boolean(payload.submission_error));
        }
        if (payload.state === 'completed' && payload.result) {
          const r = payload.result;
          $('verdict').textContent = r.passed ? 'Passed' : 'Not passed';
          $('score').textContent = `${r.score}/${r.total_questions} (${r.percentage.toFixed(1)}%), passing threshold ${r.passing_threshold}%`;
          show('retry-button', false);
        }
      }

      async function loadExamTypes() {
        const response = await fetch('/exam-types');
        const types = await response.json();
        $('exam-types').innerHTML = '';
        types.forEach((examType) => {
          const button = document.createElement('button');
          button.textContent = examType.name;
          button.onclick = () => call('POST', '/session/select', { exam_type_id: examType.id });
          $('exam-types').appendChild(button);
        });
      }

      function report(kind) {
        if (state && state.state === 'in_progress') {
          call('POST', '/session/violation', { kind });
        }
      }
      document.addEventListener('visibilitychange', () => { if (document.hidden) report('tab_switch'); });
      window.addEventListener('blur', () => report('window_blur'));

      $('identity-button').onclick = () => {
        identity = { id: $('candidate-id').value.trim(), name: $('candidate-name').value.trim() };
        if (!identity.id) { $('status').textContent = 'Please enter your candidate ID.'; return; }
        sessionStorage.setItem('examqt_identity', JSON.stringify(identity));
        start();
      };
      $('token-button').onclick = () => call('POST', '/session/authorize', { token: $('token-input').value });
      $('token-cancel').onclick = () => call('POST', '/session/cancel');
      $('next-button').onclick = () => call('POST', '/session/next');
      $('retry-button').onclick = () => call('POST', '/session/retry');
      $('reset-button').onclick = () => call('POST', '/session/reset');

      function start() {
        show('identity-card', false);
        loadExamTypes();
        call('GET', '/session');
        setInterval(() => call('GET', '/session'), 1000);
      }
      if (identity) { start(); }
    </script>
  </body>
</html>
"""


class SelectExamPayload(BaseModel):
    """Payload schema for choosing an exam type."""

    exam_type_id: int


class TokenPayload(BaseModel):
    token: str


class AnswerPayload(BaseModel):
    """Payload schema for selecting (or toggling) an option of the current question."""

    option_index: int


class ViolationPayload(BaseModel):
    kind: ViolationKind


@contextmanager
def _exam_errors() -> Iterator[None]:
    """Translate domain errors raised by a session into HTTP responses."""
    try:
        yield
    except EmptyPoolError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except AuthorizationError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0]) if exc.args else "Not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _exam_type_payload(exam_type: ExamType | None) -> dict[str, object] | None:
    if exam_type is None:
        return None
    return {
        "id": exam_type.id,
        "name": exam_type.name,
        "description": exam_type.description,
        "passing_threshold": exam_type.passing_threshold,
    }


def serialize_session(session: ExamSession) -> dict[str, object]:
    """Candidate-facing view of a session. Correct answers are never included."""
    view = session.view()
    question = view.question
    question_payload = None
    if question is not None:
        question_payload = {
            "question_id": question.question_id,
            "prompt_html": renderer.render_fragment(question.prompt),
            "options_html": [renderer.render_inline(option) for option in question.options],
            "is_multiple_choice": question.is_multiple_choice,
            "time_limit_seconds": question.time_limit_seconds,
        }

    result = view.result
    result_payload = None
    if result is not None:
        result_payload = {
            "result_id": result.result_id,
            "score": result.score,
            "total_questions": result.total_questions,
            "percentage": result.percentage,
            "passed": result.passed,
            "passing_threshold": result.passing_threshold,
        }

    error = view.submission_error
    return {
        "state": view.state.value,
        "candidate_id": session.candidate.candidate_id,
        "exam_type": _exam_type_payload(view.exam_type),
        "question_index": view.question_index,
        "question_count": view.question_count,
        "question": question_payload,
        "answer": view.answer,
        "can_advance": view.can_advance,
        "time_remaining": view.time_remaining,
        "timer_band": timer_band(view.time_remaining),
        "violation": view.violation.value if view.violation is not None else None,
        "submission_error": str(error) if error is not None else None,
        "result": result_payload,
    }


def _get_exam_manager_dependency(exam_manager: ExamManager):
    def dependency() -> ExamManager:
        return exam_manager

    return dependency


def create_api_app(exam_manager: ExamManager) -> FastAPI:
    """Create a FastAPI application wired to the provided exam manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    exam_manager_dep = _get_exam_manager_dependency(exam_manager)

    def candidate_dep(
        candidate_id: str | None = Header(default=None, alias=CANDIDATE_ID_HEADER),
        display_name: str | None = Header(default=None, alias=CANDIDATE_NAME_HEADER),
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> Candidate:
        if not candidate_id or not candidate_id.strip():
            raise HTTPException(status_code=401, detail=f"Missing {CANDIDATE_ID_HEADER} header.")
        return manager.resolve_candidate(candidate_id, display_name)

    def session_dep(
        candidate: Candidate = Depends(candidate_dep),
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> ExamSession:
        return manager.session_for(candidate)

    @app.get("/", response_class=HTMLResponse)
    def serve_candidate_page() -> str:
        return _CANDIDATE_PAGE_HTML

    @app.get("/exam-types")
    def list_exam_types(manager: ExamManager = Depends(exam_manager_dep)) -> list[dict[str, object]]:
        return [_exam_type_payload(exam_type) for exam_type in manager.list_exam_types()]

    @app.get("/session")
    def get_session(session: ExamSession = Depends(session_dep)) -> dict[str, object]:
        return serialize_session(session)

    @app.post("/session/select")
    def select_exam_type(
        payload: SelectExamPayload,
        session: ExamSession = Depends(session_dep),
    ) -> dict[str, object]:
        with _exam_errors():
            session.select_exam_type(payload.exam_type_id)
        return serialize_session(session)

    @app.post("/session/authorize")
    def authorize(
        payload: TokenPayload,
        session: ExamSession = Depends(session_dep),
    ) -> dict[str, object]:
        with _exam_errors():
            session.authorize(payload.token)
        return serialize_session(session)

    @app.post("/session/cancel")
    def cancel_authorization(session: ExamSession = Depends(session_dep)) -> dict[str, object]:
        with _exam_errors():
            session.cancel_authorization()
        return serialize_session(session)

    @app.post("/session/answer")
    def select_option(
        payload: AnswerPayload,
        session: ExamSession = Depends(session_dep),
    ) -> dict[str, object]:
        with _exam_errors():
            session.select_option(payload.option_index)
        return serialize_session(session)

    @app.post("/session/next")
    def next_question(session: ExamSession = Depends(session_dep)) -> dict[str, object]:
        with _exam_errors():
            session.next()
        return serialize_session(session)

    @app.post("/session/violation")
    def report_violation(
        payload: ViolationPayload,
        session: ExamSession = Depends(session_dep),
    ) -> dict[str, object]:
        if session.report_violation(payload.kind):
            logger.warning(
                "Violation %s reported for %s", payload.kind.value, session.candidate.candidate_id
            )
        return serialize_session(session)

    @app.post("/session/retry")
    def retry_submission(session: ExamSession = Depends(session_dep)) -> dict[str, object]:
        with _exam_errors():
            session.retry_submission()
        return serialize_session(session)

    @app.post("/session/reset")
    def reset_session(
        candidate: Candidate = Depends(candidate_dep),
        manager: ExamManager = Depends(exam_manager_dep),
    ) -> dict[str, object]:
        with _exam_errors():
            session = manager.reset_session(candidate)
        return serialize_session(session)

    return app


def start_api_server(
    exam_manager: ExamManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(exam_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="ExamApiServer", daemon=True)
    thread.start()
    return thread

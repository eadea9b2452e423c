"""
api/routes.py — FastAPI 엔드포인트
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

import api.session as session
from config import OPENAI_API_KEY
from interview_mcq.errors import (
    AlreadyAttemptedError, AlreadySubmittedError, GenerationFailure, InvalidStateError,
    McqError, SubmissionTransportError, ValidationError,
)
from interview_mcq.models.session_state import TestResult, UserInfo, ViolationKind
from interview_mcq.services.exam_service import get_incorrect_questions
from interview_mcq.services.navigator import build_navigator
from interview_mcq.services.proctoring import ProctoringMonitor
from interview_mcq.services.rich_text import contains_code, render_blocks
from interview_mcq.services.scoring_service import ScoringService
from interview_mcq.services.test_session import TestSession
from interview_mcq.services.ticker import SessionTicker

logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABLE_TOPICS = [
    "JavaScript", "React", "Node.js", "Python", "Java", "C++", "Database",
    "System Design", "Data Structures", "Algorithms", "Machine Learning",
    "DevOps", "Cloud Computing", "Cybersecurity", "Frontend Development",
    "Backend Development",
]

# ── Pydantic request bodies ──────────────────────────────────────────────────

class ApiKeyBody(BaseModel):
    api_key: str

class ProfileBody(BaseModel):
    name: str
    email: Optional[str] = None

class ConfigureBody(BaseModel):
    topic: str = ""
    experience: str = "beginner"
    specialization: Optional[str] = None
    number_of_questions: int = 30

class QuestionIndexBody(BaseModel):
    question_index: int

class SelectAnswerBody(BaseModel):
    question_index: int
    option_index: int

class ViolationBody(BaseModel):
    kind: ViolationKind

class SubmitBody(BaseModel):
    confirm: bool = False


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

_STATUS_BY_ERROR = [
    (ValidationError, 400),
    (AlreadyAttemptedError, 409),
    (AlreadySubmittedError, 409),
    (InvalidStateError, 409),
    (SubmissionTransportError, 502),
    (GenerationFailure, 503),
]


def _to_http(e: McqError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def _sid(request: Request) -> str:
    return request.state.session_id


def _require_test(sid: str) -> TestSession:
    test: Optional[TestSession] = session.get(sid, "test_session")
    if test is None:
        raise HTTPException(status_code=404, detail="시험 세션이 없습니다.")
    return test


def _result_to_dict(result: TestResult) -> dict:
    d = result.model_dump(mode="json")
    d["integrity_note"] = result.integrity_note
    return d


def _state_payload(test: TestSession) -> dict:
    d = test.snapshot()
    d["navigator"] = build_navigator(test.state, test.total_questions).model_dump(mode="json")
    return d


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/api/set-api-key")
async def set_api_key(body: ApiKeyBody, request: Request):
    key = body.api_key.strip()
    if not key:
        raise HTTPException(status_code=400, detail="API 키가 비어 있습니다.")
    if not key.startswith(("sk-", "sk-proj-")):
        raise HTTPException(status_code=400, detail="올바른 OpenAI API 키 형식이 아닙니다 (sk-... 형식).")
    session.put(_sid(request), "api_key", key)
    return {"ok": True}


@router.post("/api/profile")
async def set_profile(body: ProfileBody, request: Request):
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="이름이 비어 있습니다.")
    sid = _sid(request)
    session.put(sid, "user_name", name)
    session.put(sid, "user_email", body.email)
    return {"ok": True}


@router.get("/api/mcq/topics")
async def get_topics():
    return {"topics": AVAILABLE_TOPICS}


@router.post("/api/mcq/configure")
async def configure_test(body: ConfigureBody, request: Request):
    sid = _sid(request)
    app_state = request.app.state
    api_key = session.get(sid, "api_key") or OPENAI_API_KEY
    email = session.get(sid, "user_email")
    user_info = UserInfo(
        id=sid,
        name=session.get(sid, "user_name") or (email.split("@")[0] if email else "User"),
        email=email,
    )

    test = TestSession(
        generator=app_state.generator_factory(api_key),
        scorer=ScoringService(
            feedback_writer=app_state.feedback_factory(api_key),
            history=app_state.history,
            notifier=app_state.notifications,
        ),
        user_info=user_info,
    )
    try:
        config = test.configure(
            body.topic, body.experience, body.specialization, body.number_of_questions,
        )
    except McqError as e:
        raise _to_http(e)

    previous: Optional[TestSession] = session.get(sid, "test_session")
    if previous is not None and previous.is_active:
        logger.warning(f"진행 중인 시험을 새 설정으로 교체: sid={sid[:8]}")
    monitor = ProctoringMonitor(test, coalesce_seconds=app_state.coalesce_seconds)
    if not session.replace_test(sid, test, monitor):
        raise HTTPException(
            status_code=409, detail="Test generation is already in progress. Please wait.",
        )
    return {
        "ok": True,
        "topic": config.topic,
        "question_count": config.question_count,
        "time_limit_seconds": config.time_limit_seconds,
    }


@router.post("/api/mcq/start")
async def start_test(request: Request):
    sid = _sid(request)
    test = _require_test(sid)
    try:
        questions = await test.start()
    except McqError as e:
        raise _to_http(e)

    # 생성 대기 중에 세션이 초기화되었으면 이 시험은 버려진 것
    if session.get(sid, "test_session") is not test:
        raise HTTPException(status_code=409, detail="This test was replaced while it was being generated.")

    if request.app.state.start_ticker:
        ticker = SessionTicker(test, interval=request.app.state.tick_interval)
        if session.set_ticker(sid, test, ticker):
            ticker.start()

    return {
        "ok": True,
        "total": len(questions),
        "time_limit_seconds": test.config.time_limit_seconds,
        "started_at": test.state.started_at,
        "deadline": test.state.deadline,
        "questions": [q.model_dump() for q in questions],
    }


@router.get("/api/mcq/state")
async def get_test_state(request: Request):
    return _state_payload(_require_test(_sid(request)))


@router.get("/api/mcq/question/{index}")
async def get_question(index: int, request: Request):
    test = _require_test(_sid(request))
    questions = test.public_questions
    if not (0 <= index < len(questions)):
        raise HTTPException(status_code=404, detail="문제를 찾을 수 없습니다.")

    q = questions[index]
    state = test.state
    d = q.model_dump()
    d.update({
        "index": index,
        "total": len(questions),
        "prompt_blocks": [b.model_dump() for b in render_blocks(q.prompt)],
        "option_blocks": [[b.model_dump() for b in render_blocks(opt)] for opt in q.options],
        "has_code": contains_code(q.prompt),
        "saved_answer": state.answers.get(index),
        "pending_selection": state.pending_selection if index == state.current_index else None,
        "marked_for_review": index in state.marked_for_review,
    })
    return d


@router.post("/api/mcq/select")
async def select_answer(body: SelectAnswerBody, request: Request):
    test = _require_test(_sid(request))
    try:
        test.select_answer(body.question_index, body.option_index)
    except McqError as e:
        raise _to_http(e)
    return {"ok": True, "pending_selection": test.state.pending_selection}


@router.post("/api/mcq/commit")
async def commit_answer(request: Request):
    test = _require_test(_sid(request))
    try:
        index = test.commit_and_advance()
    except McqError as e:
        raise _to_http(e)
    return {"ok": True, "index": index, "answered_count": len(test.state.answers)}


@router.post("/api/mcq/clear")
async def clear_answer(body: QuestionIndexBody, request: Request):
    test = _require_test(_sid(request))
    try:
        test.clear_answer(body.question_index)
    except McqError as e:
        raise _to_http(e)
    return {"ok": True, "answered_count": len(test.state.answers)}


@router.post("/api/mcq/mark")
async def toggle_mark(body: QuestionIndexBody, request: Request):
    test = _require_test(_sid(request))
    try:
        marked = test.toggle_mark_for_review(body.question_index)
    except McqError as e:
        raise _to_http(e)
    return {"ok": True, "marked": marked}


@router.post("/api/mcq/jump")
async def jump_to(body: QuestionIndexBody, request: Request):
    test = _require_test(_sid(request))
    try:
        test.jump_to(body.question_index)
    except McqError as e:
        raise _to_http(e)
    return {"ok": True, "index": test.state.current_index}


@router.post("/api/mcq/violation")
async def report_violation(body: ViolationBody, request: Request):
    sid = _sid(request)
    _require_test(sid)
    monitor: ProctoringMonitor = session.get(sid, "monitor")
    warning = await monitor.report(body.kind)
    if warning is None:
        return {"ok": True, "counted": False}
    d = warning.model_dump(mode="json", exclude={"result"})
    d.update({
        "ok": True,
        "counted": True,
        "result": _result_to_dict(warning.result) if warning.result else None,
    })
    return d


@router.post("/api/mcq/submit")
async def submit_test(request: Request, body: Optional[SubmitBody] = None):
    test = _require_test(_sid(request))
    body = body or SubmitBody()

    # 중복 클릭: 이미 제출된 시험은 같은 결과를 다시 돌려준다
    if test.result is not None:
        return {"ok": True, "result": _result_to_dict(test.result)}

    unanswered = test.total_questions - len(test.state.answers)
    if test.is_active and unanswered > 0 and not body.confirm:
        # 미응답 문제가 있으면 먼저 확인을 받는다
        return {"ok": False, "needs_confirmation": True, "unanswered": unanswered}

    try:
        result = await test.submit()
    except AlreadySubmittedError:
        result = test.result
    except McqError as e:
        raise _to_http(e)
    if result is None:
        return {"ok": False, "in_progress": True}
    return {"ok": True, "result": _result_to_dict(result)}


@router.get("/api/mcq/results")
async def get_results(request: Request):
    test = _require_test(_sid(request))
    if test.result is None:
        raise HTTPException(status_code=400, detail="시험이 아직 제출되지 않았습니다.")

    answers = test.answers
    questions = test.scoring_questions
    d = _result_to_dict(test.result)
    d.update({
        "topic": test.config.topic,
        "unanswered_count": len(questions) - len(answers),
        "incorrect_questions": get_incorrect_questions(questions, answers),
    })
    return d


@router.get("/api/mcq/history")
async def get_history(request: Request, limit: Optional[int] = Query(None, ge=1)):
    sid = _sid(request)
    history = request.app.state.history
    records = [
        r.model_dump(mode="json", exclude={"questions_with_answers", "user_answers"})
        for r in history.list_for(sid, limit)
    ]
    return {"tests": records, "stats": history.stats_for(sid)}


@router.get("/api/notifications")
async def get_notifications(request: Request, unread_only: bool = False):
    sid = _sid(request)
    center = request.app.state.notifications
    return {
        "notifications": [n.model_dump(mode="json") for n in center.list_for(sid, unread_only)],
        "unread_count": center.unread_count(sid),
    }


@router.post("/api/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: int, request: Request):
    if not request.app.state.notifications.mark_read(_sid(request), notification_id):
        raise HTTPException(status_code=404, detail="알림을 찾을 수 없습니다.")
    return {"ok": True}


@router.post("/api/reset")
async def reset_session(request: Request):
    session.reset(_sid(request))
    return {"ok": True}

"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + 세션 정리 스레드
"""

import logging
import threading
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import TICK_INTERVAL_SECONDS, VIOLATION_COALESCE_SECONDS
from api.routes import router
import api.session as session
from interview_mcq.services.history_store import HistoryStore
from interview_mcq.services.notification_service import NotificationCenter
from interview_mcq.services.question_generator import OpenAIQuestionGenerator, QuestionGenerator
from interview_mcq.services.scoring_service import OpenAIFeedbackWriter

SESSION_COOKIE = "mcq_session"


def _default_feedback_factory(api_key: str) -> Optional[OpenAIFeedbackWriter]:
    return OpenAIFeedbackWriter(api_key) if api_key else None


def create_app(
    generator_factory: Optional[Callable[[str], QuestionGenerator]] = None,
    feedback_factory: Optional[Callable[[str], Optional[OpenAIFeedbackWriter]]] = None,
    start_ticker: bool = True,
    tick_interval: float = TICK_INTERVAL_SECONDS,
    coalesce_seconds: float = VIOLATION_COALESCE_SECONDS,
) -> FastAPI:
    app = FastAPI(title="Interview Prep MCQ Test", docs_url=None, redoc_url=None)

    # 협력자 (테스트에서 교체 가능)
    app.state.generator_factory = generator_factory or OpenAIQuestionGenerator
    app.state.feedback_factory = feedback_factory or _default_feedback_factory
    app.state.history = HistoryStore()
    app.state.notifications = NotificationCenter()
    app.state.start_ticker = start_ticker
    app.state.tick_interval = tick_interval
    app.state.coalesce_seconds = coalesce_seconds

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=session.SESSION_TTL,
        )
        return response

    app.include_router(router)

    # 만료 세션 주기적 정리 (5분마다)
    def _cleanup_loop():
        while True:
            time.sleep(300)
            removed = session.cleanup_expired()
            if removed:
                logging.getLogger(__name__).info(f"만료 세션 {removed}개 정리")

    t = threading.Thread(target=_cleanup_loop, daemon=True)
    t.start()

    return app

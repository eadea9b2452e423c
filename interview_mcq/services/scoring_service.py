"""
services/scoring_service.py

채점 협력자.
Public API:
  - ScoringRequest          : 제출 요청 (확정 답안 + 채점용 문제 + 시간 + 부정행위 기록)
  - Scorer                  : 채점기 인터페이스 (async score)
  - ScoringService          : 로컬 채점 + AI 피드백 + 기록 저장/알림 (fire-and-forget)
  - OpenAIFeedbackWriter    : OpenAI 기반 개인화 피드백

저장/알림 실패는 로그만 남기고 결과 반환을 막지 않는다.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from interview_mcq.models.question_model import Question
from interview_mcq.models.session_state import (
    ExperienceLevel, SubmitReason, TestResult, UserInfo, ViolationLedger,
)
from interview_mcq.services.ai_client import call_openai, make_client
from interview_mcq.services.exam_service import (
    calculate_score, count_correct, default_feedback, get_grade, get_performance_level,
)
from interview_mcq.services.history_store import HistoryStore, TestRecord
from interview_mcq.services.notification_service import NotificationCenter, NotificationType

logger = logging.getLogger(__name__)


class ScoringRequest(BaseModel):
    topic: str
    answers: Dict[int, int] = Field(default_factory=dict)
    questions: List[Question]
    user_info: UserInfo = Field(default_factory=UserInfo)
    question_count: int
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    specialization: Optional[str] = None
    time_spent_seconds: int = 0
    violation_summary: ViolationLedger = Field(default_factory=ViolationLedger)
    reason: SubmitReason = SubmitReason.MANUAL


class Scorer:
    """채점기 인터페이스. 전송 실패 시 SubmissionTransportError를 던진다."""

    async def score(self, request: ScoringRequest) -> TestResult:
        raise NotImplementedError


class OpenAIFeedbackWriter:
    """채점 결과에 대한 개인화 피드백을 생성한다. 실패 시 None."""

    def __init__(self, api_key: str):
        self._api_key = api_key

    async def write(self, request: ScoringRequest, score: int, correct: int) -> Optional[str]:
        client = make_client(self._api_key)
        if client is None:
            return None
        total = len(request.questions)
        prompt = (
            f"A user named {request.user_info.name} has completed a {total}-question MCQ test "
            f"on {request.topic} and scored {score}% ({correct}/{total} correct).\n\n"
            "Provide personalized feedback including:\n"
            "1. Overall performance assessment\n"
            "2. Strengths and areas for improvement\n"
            "3. Study recommendations\n"
            "4. Motivational message\n"
            "5. Next steps for learning\n\n"
            "Keep it encouraging and constructive."
        )
        raw = await asyncio.to_thread(
            call_openai, client, "You are a supportive interview coach.", prompt,
        )
        if not raw:
            return None
        return re.sub(r"[*#`_]", "", raw).strip()


class ScoringService(Scorer):

    def __init__(
        self,
        feedback_writer: Optional[OpenAIFeedbackWriter] = None,
        history: Optional[HistoryStore] = None,
        notifier: Optional[NotificationCenter] = None,
    ):
        self._feedback_writer = feedback_writer
        self._history = history
        self._notifier = notifier

    async def score(self, request: ScoringRequest) -> TestResult:
        correct = count_correct(request.questions, request.answers)
        score = calculate_score(request.questions, request.answers)

        result = TestResult(
            score=score,
            correct_count=correct,
            total_questions=len(request.questions),
            time_spent_seconds=request.time_spent_seconds,
            violation_summary=request.violation_summary,
            grade=get_grade(score),
            performance_level=get_performance_level(score),
            feedback=await self._feedback(request, score, correct),
            test_status=request.reason,
        )
        logger.info(
            f"채점 완료: user={request.user_info.id}, score={score}%, "
            f"{correct}/{result.total_questions}, status={request.reason.value}"
        )
        self._record(request, result)
        self._notify(request, result)
        return result

    async def _feedback(self, request: ScoringRequest, score: int, correct: int) -> str:
        if self._feedback_writer is not None:
            try:
                text = await self._feedback_writer.write(request, score, correct)
            except Exception as e:
                logger.warning(f"AI 피드백 생성 실패: {e}")
                text = None
            if text:
                return text
        return default_feedback(request.user_info.name, score)

    def _record(self, request: ScoringRequest, result: TestResult) -> None:
        if self._history is None:
            return
        try:
            self._history.add(TestRecord.from_result(request, result))
        except Exception as e:
            logger.warning(f"시험 기록 저장 실패 (결과 표시는 계속): {e}")

    def _notify(self, request: ScoringRequest, result: TestResult) -> None:
        if self._notifier is None:
            return
        if result.test_status is SubmitReason.MANUAL:
            kind, title = NotificationType.SUCCESS, "MCQ test completed"
        else:
            kind, title = NotificationType.WARNING, "MCQ test submitted automatically"
        message = (
            f"{request.topic}: {result.score}% ({result.correct_count}/{result.total_questions}), "
            f"grade {result.grade}."
        )
        if result.integrity_note:
            message += f" {result.integrity_note}"
        try:
            self._notifier.dispatch(request.user_info.id, kind, title, message)
        except Exception as e:
            logger.warning(f"알림 발송 실패 (결과 표시는 계속): {e}")

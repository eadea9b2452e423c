"""
services/history_store.py — 사용자별 시험 기록 (인메모리)

채점이 끝난 시험을 기록하고, 기록 화면용 목록/통계를 제공한다.
"""

import threading
from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import BaseModel, Field

from interview_mcq.models.question_model import Question
from interview_mcq.models.session_state import (
    ExperienceLevel, SubmitReason, TestResult, ViolationLedger,
)

if TYPE_CHECKING:
    from interview_mcq.services.scoring_service import ScoringRequest


class TestRecord(BaseModel):
    __test__ = False

    user_id: str
    topic: str
    experience_level: ExperienceLevel
    specialization: Optional[str] = None
    total_questions: int
    correct_answers: int
    score: int
    time_spent_seconds: int
    user_answers: Dict[int, int] = Field(default_factory=dict)
    questions_with_answers: List[Question] = Field(default_factory=list)
    security_warnings: ViolationLedger = Field(default_factory=ViolationLedger)
    test_status: SubmitReason = SubmitReason.MANUAL
    performance_level: str = "Needs Improvement"
    completed_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_result(cls, request: "ScoringRequest", result: TestResult) -> "TestRecord":
        return cls(
            user_id=request.user_info.id,
            topic=request.topic,
            experience_level=request.experience_level,
            specialization=request.specialization,
            total_questions=result.total_questions,
            correct_answers=result.correct_count,
            score=result.score,
            time_spent_seconds=result.time_spent_seconds,
            user_answers=dict(request.answers),
            questions_with_answers=list(request.questions),
            security_warnings=result.violation_summary,
            test_status=result.test_status,
            performance_level=result.performance_level,
            completed_at=result.completed_at,
        )


class HistoryStore:

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[str, List[TestRecord]] = {}

    def add(self, record: TestRecord) -> None:
        with self._lock:
            self._records.setdefault(record.user_id, []).append(record)

    def list_for(self, user_id: str, limit: Optional[int] = None) -> List[TestRecord]:
        """최신 기록부터 반환."""
        with self._lock:
            records = list(reversed(self._records.get(user_id, [])))
        return records[:limit] if limit else records

    def stats_for(self, user_id: str) -> Dict[str, object]:
        records = self.list_for(user_id)
        if not records:
            return {"total_tests": 0, "average_score": 0.0, "best_score": 0}
        scores = [r.score for r in records]
        return {
            "total_tests": len(records),
            "average_score": round(sum(scores) / len(scores), 1),
            "best_score": max(scores),
        }

    def clear(self, user_id: str) -> None:
        with self._lock:
            self._records.pop(user_id, None)

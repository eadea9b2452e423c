"""
models/session_state.py

시험 설정, 진행 상태(OMR 카드), 부정행위 기록, 결과를 담는 모델.
Pydantic BaseModel 기반. 직렬화/역직렬화 및 타입 안전성 확보.
동작(상태 전이)은 services/test_session.py 에 있다.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import ALLOWED_QUESTION_COUNTS, TIME_PER_QUESTION_SECONDS, VIOLATION_THRESHOLD


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class SessionStatus(str, Enum):
    CONFIGURING = "configuring"
    ACTIVE = "active"
    SUBMITTED = "submitted"


class SubmitReason(str, Enum):
    """제출 경로. 결과 기록의 test_status 로 그대로 남는다."""
    MANUAL = "completed"
    VIOLATIONS = "auto-submitted"
    TIMEOUT = "timeout"


class ViolationKind(str, Enum):
    FULLSCREEN_EXIT = "fullscreen_exit"
    TAB_SWITCH = "tab_switch"
    EXTERNAL_NOTIFICATION = "external_notification"


class TestConfiguration(BaseModel):
    """응시자가 고른 시험 설정. 세션 시작 후에는 변경 불가."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., min_length=1)
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    specialization: Optional[str] = None
    question_count: int = 30

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Topic is required")
        return v

    @field_validator("specialization")
    @classmethod
    def blank_specialization_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("question_count")
    @classmethod
    def validate_question_count(cls, v: int) -> int:
        if v not in ALLOWED_QUESTION_COUNTS:
            raise ValueError(f"question_count must be one of {list(ALLOWED_QUESTION_COUNTS)}")
        return v

    @property
    def time_limit_seconds(self) -> int:
        return self.question_count * TIME_PER_QUESTION_SECONDS


class ViolationLedger(BaseModel):
    """
    세 종류의 부정행위 카운터.

    불변 값 객체. increment()는 새 ledger를 반환하고 원본은 그대로 둔다.
    """

    model_config = ConfigDict(frozen=True)

    fullscreen_exits: int = Field(default=0, ge=0)
    tab_switches: int = Field(default=0, ge=0)
    external_notifications: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.fullscreen_exits + self.tab_switches + self.external_notifications

    @property
    def threshold_reached(self) -> bool:
        return self.total >= VIOLATION_THRESHOLD

    def increment(self, kind: ViolationKind) -> "ViolationLedger":
        field = {
            ViolationKind.FULLSCREEN_EXIT: "fullscreen_exits",
            ViolationKind.TAB_SWITCH: "tab_switches",
            ViolationKind.EXTERNAL_NOTIFICATION: "external_notifications",
        }[kind]
        return self.model_copy(update={field: getattr(self, field) + 1})


class ExamState(BaseModel):
    """
    사용자의 시험 세션 진행 상태를 표현하는 모델.

    Attributes:
        status:            configuring → active → submitted
        current_index:     현재 화면에 보이는 문제 인덱스 (0-based).
        pending_selection: 아직 저장(commit)되지 않은 현재 문제의 선택.
        answers:           확정 답안지. {문제 인덱스: 선택한 보기 인덱스} (미응답은 키 없음)
        marked_for_review: 검토 표시한 문제 인덱스 집합.
        visited:           한 번이라도 화면에 표시된 문제 인덱스 집합.
        started_at:        시험 시작 시각 (Unix timestamp). 시작 전에는 None.
        deadline:          started_at + 문제 수 × 120초. 시작 후 변경되지 않는다.
        remaining_seconds: 타이머 틱으로 감소하는 남은 시간.
    """

    status: SessionStatus = SessionStatus.CONFIGURING
    current_index: int = Field(default=0, ge=0)
    pending_selection: Optional[int] = None
    answers: Dict[int, int] = Field(default_factory=dict)
    marked_for_review: Set[int] = Field(default_factory=set)
    visited: Set[int] = Field(default_factory=set)
    started_at: Optional[float] = None
    deadline: Optional[float] = None
    remaining_seconds: int = 0
    ledger: ViolationLedger = Field(default_factory=ViolationLedger)


class UserInfo(BaseModel):
    id: str = "anonymous"
    name: str = "User"
    email: Optional[str] = None


class TestResult(BaseModel):
    """채점 결과. 채점 협력자가 한 번 만들고 이후 읽기 전용."""

    __test__ = False

    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    correct_count: int = Field(..., ge=0)
    total_questions: int = Field(..., ge=0)
    time_spent_seconds: int = Field(default=0, ge=0)
    violation_summary: ViolationLedger = Field(default_factory=ViolationLedger)
    grade: str = "F"
    performance_level: str = "Needs Improvement"
    feedback: str = ""
    test_status: SubmitReason = SubmitReason.MANUAL
    completed_at: datetime = Field(default_factory=datetime.now)

    @property
    def integrity_note(self) -> Optional[str]:
        if self.violation_summary.total == 0:
            return None
        return (
            f"{self.violation_summary.total} integrity warning(s) were recorded during this test. "
            "Results may be affected."
        )

"""
services/proctoring.py

시험 중 무결성 신호(전체화면 이탈, 탭 전환, 외부 알림 의심)를 감시한다.

- 신호 하나가 ledger 카운터 하나를 증가시키고, 매번 별도의 경고 문구를 만든다.
- 하나의 물리적 사건이 여러 신호로 들어오면 (탭 전환 시 blur + visibility 변경 등)
  병합 구간 안의 후속 신호는 버린다.
- 합계가 처음 한도(3)에 도달하면 세션 제출을 정확히 한 번 강제한다.
- 권고용 휴리스틱일 뿐 보안 경계가 아니다. 결과는 무효가 아니라 "영향 받을 수 있음"으로 표시.
"""

import logging
import time
from typing import Callable, Optional

from pydantic import BaseModel

from config import VIOLATION_COALESCE_SECONDS, VIOLATION_THRESHOLD
from interview_mcq.errors import SubmissionTransportError
from interview_mcq.models.session_state import (
    SubmitReason, TestResult, ViolationKind, ViolationLedger,
)
from interview_mcq.services.test_session import TestSession

logger = logging.getLogger(__name__)

_EVENT_MESSAGES = {
    ViolationKind.FULLSCREEN_EXIT: "You exited fullscreen mode.",
    ViolationKind.TAB_SWITCH: "You switched tabs or minimized the window.",
    ViolationKind.EXTERNAL_NOTIFICATION: "The test window lost focus (possible external notification).",
}


class ViolationWarning(BaseModel):
    kind: ViolationKind
    message: str
    total: int
    threshold: int
    ledger: ViolationLedger
    auto_submitted: bool = False
    result: Optional[TestResult] = None
    submit_error: Optional[str] = None


class ProctoringMonitor:
    """세션 하나에 붙는 감시기. 새 세션을 설정하면 새 감시기를 만든다."""

    def __init__(
        self,
        session: TestSession,
        threshold: int = VIOLATION_THRESHOLD,
        coalesce_seconds: float = VIOLATION_COALESCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session = session
        self._threshold = threshold
        self._coalesce_seconds = coalesce_seconds
        self._clock = clock
        self._last_counted_at: Optional[float] = None
        self._forced = False

    @property
    def forced_submission(self) -> bool:
        return self._forced

    async def report(self, kind: ViolationKind, at: Optional[float] = None) -> Optional[ViolationWarning]:
        """
        신호 하나를 처리한다.

        Returns:
            ViolationWarning: 카운트된 경우.
            None: 병합되었거나, 세션이 active가 아니거나, 이미 강제 제출된 경우.
        """
        if self._forced:
            return None
        now = self._clock() if at is None else at
        if (
            self._last_counted_at is not None
            and now - self._last_counted_at < self._coalesce_seconds
        ):
            logger.debug(f"병합된 신호 무시: {kind.value}")
            return None

        ledger = self._session.apply_violation(kind)
        if ledger is None:
            return None
        self._last_counted_at = now

        total = ledger.total
        warning = ViolationWarning(
            kind=kind,
            message=f"Warning {total}/{self._threshold}: {_EVENT_MESSAGES[kind]}",
            total=total,
            threshold=self._threshold,
            ledger=ledger,
        )
        logger.info(f"부정행위 신호 기록: {kind.value} (합계 {total}/{self._threshold})")

        if total < self._threshold:
            return warning

        self._forced = True
        warning.auto_submitted = True
        warning.message = (
            f"Warning {total}/{self._threshold}: {_EVENT_MESSAGES[kind]} "
            "Maximum warnings reached. Your test is being submitted automatically; "
            "results may be affected."
        )
        try:
            warning.result = await self._session.submit(SubmitReason.VIOLATIONS)
        except SubmissionTransportError as e:
            warning.submit_error = str(e)
        return warning

"""
services/ticker.py — 시험 타이머

1초 간격으로 TestSession.elapsed_tick()을 호출하는 asyncio 반복 태스크.
틱은 사용자 이벤트와 같은 이벤트 루프에서 실행되므로 세션 상태 변경이 직렬화된다.
"""

import asyncio
import logging
from typing import Optional

from config import TICK_INTERVAL_SECONDS
from interview_mcq.errors import SubmissionTransportError
from interview_mcq.services.test_session import TestSession

logger = logging.getLogger(__name__)


class SessionTicker:

    def __init__(self, session: TestSession, interval: float = TICK_INTERVAL_SECONDS):
        self._session = session
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """실행 중인 이벤트 루프에 틱 태스크를 올린다."""
        if self.running:
            return self._task
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self.run())
        return self._task

    async def run(self) -> None:
        while self._session.is_active and self._session.state.remaining_seconds > 0:
            await asyncio.sleep(self._interval)
            try:
                await self._session.elapsed_tick()
            except SubmissionTransportError as e:
                # 시간 종료 후 제출 실패: 사용자가 직접 재제출해야 한다
                logger.warning(f"시간 종료 자동 제출 실패: {e}")
                break
        logger.info("타이머 종료")

    def stop(self) -> None:
        """다른 스레드(세션 정리 루프)에서 호출해도 안전하다."""
        if not self.running:
            return
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._task.cancel)
        else:
            self._task.cancel()

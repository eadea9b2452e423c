"""
services/notification_service.py — 사용자 알림 (인메모리)

발송 측에서는 fire-and-forget. 조회/읽음 처리는 API 라우트가 사용한다.
"""

import itertools
import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS_PER_USER = 100


class NotificationType(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    id: int
    user_id: str
    type: NotificationType = NotificationType.INFO
    title: str
    message: str
    read: bool = False
    created_at: datetime = Field(default_factory=datetime.now)


class NotificationCenter:

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._inbox: Dict[str, List[Notification]] = {}

    def dispatch(self, user_id: str, kind: NotificationType, title: str, message: str) -> Notification:
        with self._lock:
            note = Notification(
                id=next(self._ids), user_id=user_id, type=kind, title=title, message=message,
            )
            inbox = self._inbox.setdefault(user_id, [])
            inbox.append(note)
            # 오래된 알림부터 버림
            del inbox[:-MAX_NOTIFICATIONS_PER_USER]
        logger.info(f"알림 발송: user={user_id}, type={kind.value}, title={title!r}")
        return note

    def list_for(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        with self._lock:
            notes = list(reversed(self._inbox.get(user_id, [])))
        if unread_only:
            notes = [n for n in notes if not n.read]
        return notes

    def unread_count(self, user_id: str) -> int:
        return len(self.list_for(user_id, unread_only=True))

    def mark_read(self, user_id: str, notification_id: int) -> bool:
        with self._lock:
            for note in self._inbox.get(user_id, []):
                if note.id == notification_id:
                    note.read = True
                    return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        with self._lock:
            unread = [n for n in self._inbox.get(user_id, []) if not n.read]
            for note in unread:
                note.read = True
        return len(unread)

"""
api/session.py — 멀티유저 인메모리 세션 (쿠키 기반)

각 응시자에게 UUID 세션 ID를 발급하고, 세션별로 독립된 상태를 유지.
응시자당 active 시험 세션은 하나뿐이다 (새 설정 시 이전 세션과 타이머를 교체).
TTL(기본 1시간) 경과 시 자동 만료.
"""

import threading
import time
import uuid
from typing import Any

from config import SESSION_TTL

_lock = threading.Lock()
_sessions: dict[str, dict[str, Any]] = {}
_timestamps: dict[str, float] = {}


def _new_state() -> dict[str, Any]:
    return {
        "api_key": "",
        "user_name": "User",
        "user_email": None,
        "test_session": None,
        "monitor": None,
        "ticker": None,
    }


def _stop_ticker(state: dict[str, Any]) -> None:
    ticker = state.get("ticker")
    if ticker is not None:
        ticker.stop()


def create_session() -> str:
    """새 세션을 생성하고 세션 ID를 반환."""
    sid = uuid.uuid4().hex
    with _lock:
        _sessions[sid] = _new_state()
        _timestamps[sid] = time.time()
    return sid


def get_session(sid: str) -> dict[str, Any] | None:
    """세션 ID로 세션 데이터를 가져옴. 만료되었거나 없으면 None."""
    with _lock:
        if sid not in _sessions:
            return None
        if time.time() - _timestamps[sid] > SESSION_TTL:
            _stop_ticker(_sessions[sid])
            del _sessions[sid]
            del _timestamps[sid]
            return None
        _timestamps[sid] = time.time()  # 접근 시 갱신
        return _sessions[sid]


def get(sid: str, key: str, default=None):
    """세션에서 값 읽기."""
    session = get_session(sid)
    if session is None:
        return default
    return session.get(key, default)


def put(sid: str, key: str, value) -> None:
    """세션에 값 쓰기."""
    with _lock:
        if sid in _sessions:
            _sessions[sid][key] = value
            _timestamps[sid] = time.time()


def replace_test(sid: str, test_session, monitor) -> bool:
    """
    진행 중인 시험(과 타이머)을 새 시험으로 교체.
    이전 시험의 문제 생성이 아직 진행 중이면 교체하지 않고 False 반환.
    """
    with _lock:
        if sid not in _sessions:
            return False
        state = _sessions[sid]
        current = state.get("test_session")
        if current is not None and current.is_starting:
            return False
        _stop_ticker(state)
        state.update({"test_session": test_session, "monitor": monitor, "ticker": None})
        _timestamps[sid] = time.time()
        return True


def set_ticker(sid: str, test_session, ticker) -> bool:
    """
    test_session이 아직 이 세션의 현재 시험일 때만 타이머를 등록한다.
    기존 타이머는 멈춘다. 등록하지 못하면 False.
    """
    with _lock:
        state = _sessions.get(sid)
        if state is None or state.get("test_session") is not test_session:
            return False
        _stop_ticker(state)
        state["ticker"] = ticker
        _timestamps[sid] = time.time()
        return True


def reset(sid: str) -> None:
    """세션 초기화 (API 키와 사용자 정보는 유지)."""
    with _lock:
        if sid in _sessions:
            old = _sessions[sid]
            _stop_ticker(old)
            _sessions[sid] = _new_state()
            for key in ("api_key", "user_name", "user_email"):
                _sessions[sid][key] = old.get(key)
            _timestamps[sid] = time.time()


def cleanup_expired() -> int:
    """만료된 세션을 정리. 제거된 수 반환."""
    now = time.time()
    removed = 0
    with _lock:
        expired = [sid for sid, ts in _timestamps.items() if now - ts > SESSION_TTL]
        for sid in expired:
            _stop_ticker(_sessions[sid])
            del _sessions[sid]
            del _timestamps[sid]
            removed += 1
    return removed

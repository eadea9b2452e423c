"""
main.py — Interview Prep MCQ 테스트 서버 진입점
"""

import os
import socket
import sys
import threading
import time
import logging
import traceback
import webbrowser

# ── 패키지 경로 설정 (반드시 최상단) ──────────────────────────────────────────
_BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if _BASE_DIR not in sys.path:
    sys.path.insert(0, _BASE_DIR)

from config import (
    ALLOWED_QUESTION_COUNTS, BASE_DIR, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT,
    LOG_FILE, MODEL_NAME, OPENAI_API_KEY, TIME_PER_QUESTION_SECONDS, VIOLATION_THRESHOLD,
)

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

# ── 서버 및 네트워크 유틸 ───────────────────────────────────────────────────

def _log_settings() -> None:
    key_source = "환경 변수" if OPENAI_API_KEY else "브라우저에서 입력"
    logger.info(f"모델: {MODEL_NAME}, API 키: {key_source}")
    logger.info(
        f"문제 수 {list(ALLOWED_QUESTION_COUNTS)}, 문제당 {TIME_PER_QUESTION_SECONDS}초, "
        f"경고 {VIOLATION_THRESHOLD}회 시 자동 제출"
    )

def _port_available(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((DEFAULT_HOST, port))
        except OSError:
            return False
        return True

def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]

def _wait_for_server(port: int, timeout: float = DEFAULT_TIMEOUT) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False

def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Uvicorn 서버 시작 - Port: {port}")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="warning")
    except Exception:
        logger.error(f"서버 오류 발생:\n{traceback.format_exc()}")

# ── 메인 실행 ────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("=== Interview Prep MCQ Test Server Started ===")
    _log_settings()
    os.chdir(BASE_DIR)

    port = DEFAULT_PORT if _port_available(DEFAULT_PORT) else _find_free_port()
    server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
    server_thread.start()

    if _wait_for_server(port):
        url = f"http://{DEFAULT_HOST}:{port}"
        logger.info(f"서버 준비 완료: {url}")
        if "--headless" in sys.argv or os.getenv("OPEN_BROWSER", "1") != "1":
            logger.info("브라우저 자동 실행 생략 (headless)")
        else:
            webbrowser.open(url)

        # 메인 스레드 유지
        try:
            while True:
                time.sleep(10)
        except KeyboardInterrupt:
            logger.info("사용자에 의해 종료되었습니다.")
    else:
        logger.error("서버 시작 제한 시간을 초과했습니다. 포트를 점유한 기존 프로세스를 확인해 보세요.")
        sys.exit(1)

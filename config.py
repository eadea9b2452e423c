import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
DEFAULT_TIMEOUT = 15.0

# OpenAI 설정
MODEL_NAME = os.getenv("MODEL_NAME", "gpt-4o-mini")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")   # 세션에 키가 없을 때 사용
MAX_API_RETRIES = 3
BACKOFF_BASE = 1.0          # 일시 오류 재시도 대기 (초, 지수 증가)

# 시험 설정
TIME_PER_QUESTION_SECONDS = 120
ALLOWED_QUESTION_COUNTS = (10, 15, 20, 25, 30)
DEFAULT_QUESTION_COUNT = 30

# 부정행위 감시 설정
VIOLATION_THRESHOLD = 3
VIOLATION_COALESCE_SECONDS = 1.0   # 이 시간 안의 연속 신호는 하나의 사건으로 본다
TICK_INTERVAL_SECONDS = 1.0

# 세션 설정
SESSION_TTL = 3600  # 1시간

"""
errors.py

MCQ 시험 흐름에서 발생하는 예외 계층.
라우트 계층은 이 예외들을 HTTP 상태 코드로 변환한다.
"""


class McqError(Exception):
    """MCQ 시험 관련 예외의 기본 클래스."""


class ValidationError(McqError, ValueError):
    """잘못된 설정/입력. 사용자가 수정 후 재시도 가능."""


class GenerationFailure(McqError):
    """문제 생성(AI 업스트림) 실패. start() 재시도 가능."""


class AlreadyAttemptedError(McqError):
    """이미 시작된 생성 시험을 다시 시작하려 함. 새 설정이 필요하다."""


class SubmissionTransportError(McqError):
    """채점 요청 전송 실패. 세션은 active 상태로 남고 재제출 가능."""


class AlreadySubmittedError(McqError):
    """이미 제출된 세션에 다시 제출을 시도함 (경쟁 조건 가드)."""


class InvalidStateError(McqError):
    """현재 세션 상태에서 허용되지 않는 동작."""

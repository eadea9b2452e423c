"""
services/ai_client.py

OpenAI Chat API 호출 공통 유틸리티.
문제 생성(question_generator)과 결과 피드백(scoring_service)이 함께 사용한다.
"""

import logging
import time
from typing import Optional

from openai import APIError, OpenAI, RateLimitError

from config import BACKOFF_BASE, MAX_API_RETRIES, MODEL_NAME

logger = logging.getLogger(__name__)

_RATE_LIMIT_MAX_RETRIES = 5
_RATE_LIMIT_BACKOFF_BASE = 2.0


def make_client(api_key: str) -> Optional[OpenAI]:
    """API 키로 OpenAI 클라이언트를 생성."""
    if not api_key:
        logger.warning("API 키가 제공되지 않았습니다.")
        return None
    try:
        return OpenAI(api_key=api_key)
    except Exception as e:
        logger.error(f"OpenAI 클라이언트 초기화 실패: {e}")
        return None


def call_openai(
    client: Optional[OpenAI],
    system_prompt: str,
    user_content: str,
    temperature: float = 0.7,
    max_retries: int = MAX_API_RETRIES,
    sleep=time.sleep,
) -> Optional[str]:
    """OpenAI Chat API 호출 + 지수 백오프 재시도. 최종 실패 시 None."""
    if client is None:
        return None

    last_exception: Optional[Exception] = None
    effective_retries = max_retries

    attempt = 0
    while attempt < effective_retries:
        attempt += 1
        try:
            response = client.chat.completions.create(
                model=MODEL_NAME,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=temperature,
                max_tokens=16384,
            )
            return response.choices[0].message.content
        except RateLimitError as e:
            last_exception = e
            effective_retries = _RATE_LIMIT_MAX_RETRIES
            if attempt < effective_retries:
                wait = _RATE_LIMIT_BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(f"Rate Limit, {wait:.1f}초 후 재시도 ({attempt}/{effective_retries})")
                sleep(wait)
            else:
                logger.error("Rate Limit 최대 재시도 초과.")
                break
        except APIError as e:
            last_exception = e
            error_str = str(e).lower()
            is_transient = any(
                k in error_str
                for k in ("timeout", "connection", "unavailable")
            )
            if getattr(e, "status_code", None) in (500, 502, 503, 504):
                is_transient = True
            if attempt < effective_retries and is_transient:
                wait = BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(f"API 오류, {wait:.1f}초 후 재시도 ({attempt}/{effective_retries})")
                sleep(wait)
            else:
                logger.error(f"API 오류: {e}")
                break
        except Exception as e:
            last_exception = e
            logger.error(f"예상치 못한 오류: {type(e).__name__}: {e}")
            break

    logger.error(f"API 최종 실패: {last_exception}")
    return None

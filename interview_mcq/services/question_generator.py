"""
services/question_generator.py

AI 기반 MCQ 문제 생성 서비스.
Public API:
  - QuestionGenerator                      : 생성기 인터페이스 (async generate)
  - OpenAIQuestionGenerator(api_key)       : OpenAI Chat API 구현
  - normalize_question(raw, fallback_id)   : 다양한 응답 형태 → 표준 Question
  - build_generated_test(raw_items, count) : 정규화 + 공개/채점 뷰 생성
  - parse_mcq_response(text, count)        : 텍스트 형식 응답 파싱

설계 원칙:
- 생성기 출력의 형태 변환(글자 키 보기 객체 → 4개 리스트)은 이 모듈 경계에서만 처리
- 내부에서는 Question 하나의 표준 형태만 사용
- 공개 뷰(questions)와 채점 뷰(questions_with_answers)는 항상 인덱스 정렬
"""

import asyncio
import logging
import random
import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from interview_mcq.errors import GenerationFailure, ValidationError
from interview_mcq.models.question_model import OPTION_COUNT, PublicQuestion, Question
from interview_mcq.models.session_state import TestConfiguration
from interview_mcq.services.ai_client import call_openai, make_client

logger = logging.getLogger(__name__)

_LETTERS = ("A", "B", "C", "D")

_FOCUS_AREAS = [
    "recent industry trends",
    "practical scenarios",
    "edge cases",
    "optimization techniques",
    "debugging challenges",
    "best practices",
    "common pitfalls",
    "advanced concepts",
    "real-world applications",
    "performance considerations",
]

_EXPERIENCE_TO_DIFFICULTY = {
    "beginner": "easy",
    "intermediate": "medium",
    "advanced": "hard",
    "expert": "expert",
}


class GeneratedTest(BaseModel):
    questions: List[PublicQuestion]
    questions_with_answers: List[Question]


class QuestionGenerator:
    """문제 생성기 인터페이스."""

    async def generate(self, config: TestConfiguration) -> GeneratedTest:
        raise NotImplementedError


# ══════════════════════════════════════════════════════════════════════════════
# 응답 형태 정규화 (어댑터)
# ══════════════════════════════════════════════════════════════════════════════

def _normalize_options(raw_options: Any) -> List[str]:
    """보기 표현을 순서 있는 4개 리스트로 변환. 글자 키 객체({"A": .., "B": ..}) 지원."""
    if isinstance(raw_options, Mapping):
        by_letter = {str(k).strip().upper().rstrip(")."): v for k, v in raw_options.items()}
        missing = [letter for letter in _LETTERS if letter not in by_letter]
        if missing:
            raise ValueError(f"보기 키 누락: {missing}")
        return [str(by_letter[letter]).strip() for letter in _LETTERS]
    if isinstance(raw_options, (list, tuple)):
        return [str(opt).strip() for opt in raw_options]
    raise ValueError(f"지원하지 않는 보기 형식: {type(raw_options).__name__}")


def _resolve_correct_index(raw_answer: Any, options: List[str]) -> int:
    """정답 표현(인덱스, 글자, 보기 텍스트)을 0-based 인덱스로 변환."""
    if isinstance(raw_answer, bool):
        raise ValueError("정답 값이 올바르지 않습니다.")
    if isinstance(raw_answer, int):
        return raw_answer
    if isinstance(raw_answer, str):
        text = raw_answer.strip()
        letter = text.strip("[]().").upper()
        if letter in _LETTERS:
            return _LETTERS.index(letter)
        if text.isdigit():
            return int(text)
        if text in options:
            return options.index(text)
    raise ValueError(f"정답을 해석할 수 없습니다: {raw_answer!r}")


def normalize_question(raw: Mapping[str, Any], fallback_id: int) -> Question:
    """
    생성기 원시 응답 한 건 → 표준 Question.

    허용하는 키:
      prompt | question | question_text
      options (list 또는 글자 키 객체)
      correct_option_index | correctAnswer | correct | answer
      explanation
    """
    prompt = raw.get("prompt") or raw.get("question") or raw.get("question_text") or ""
    options = _normalize_options(raw.get("options"))

    raw_answer = None
    for key in ("correct_option_index", "correctAnswer", "correct", "answer"):
        if raw.get(key) is not None:
            raw_answer = raw[key]
            break
    if raw_answer is None:
        raise ValueError("정답 정보가 없습니다.")
    correct_index = _resolve_correct_index(raw_answer, options)

    try:
        return Question(
            id=int(raw.get("id") or fallback_id),
            prompt=clean_content(str(prompt)),
            options=[clean_content(opt) for opt in options],
            correct_option_index=correct_index,
            explanation=clean_content(str(raw.get("explanation") or "")) or "No explanation provided.",
        )
    except PydanticValidationError as e:
        raise ValueError(str(e)) from e


def build_generated_test(raw_items: List[Mapping[str, Any]], count: int) -> GeneratedTest:
    """
    원시 문제 리스트를 정규화하여 GeneratedTest로 만든다.
    형식이 깨진 항목은 건너뛰고, 유효 문제가 count개 미만이면 GenerationFailure.
    """
    questions: List[Question] = []
    for idx, item in enumerate(raw_items):
        if not isinstance(item, Mapping):
            continue
        try:
            questions.append(normalize_question(item, fallback_id=len(questions) + 1))
        except ValueError as e:
            logger.warning(f"item[{idx}]: Question 생성 실패: {e}")
            continue

    if len(questions) < count:
        raise GenerationFailure(
            f"Failed to generate enough questions ({len(questions)}/{count}). Please try again."
        )

    questions = [q.model_copy(update={"id": i + 1}) for i, q in enumerate(questions[:count])]
    return GeneratedTest(
        questions=[q.public_view() for q in questions],
        questions_with_answers=questions,
    )


# ══════════════════════════════════════════════════════════════════════════════
# 텍스트 응답 파싱
# ══════════════════════════════════════════════════════════════════════════════

def clean_content(content: str) -> str:
    """AI 응답의 코드 블록 찌꺼기와 과도한 줄바꿈을 정리."""
    if not content:
        return content
    text = content.replace("```?", "").replace("???", "")
    text = re.sub(
        r"```(\w+)?\s*\n([\s\S]*?)\n\s*```",
        lambda m: f"```{m.group(1) or ''}\n{m.group(2).strip()}\n```",
        text,
    )
    text = re.sub(r"\n\s*\n\s*\n", "\n\n", text)
    return text.strip()


def parse_mcq_response(response: str, count: int) -> List[Dict[str, Any]]:
    """
    "1. 질문 / A) .. D) / CORRECT: X / EXPLANATION: .." 형식 응답 → 원시 문제 리스트.
    보기는 글자 키 객체로 반환되며 normalize_question()이 리스트로 변환한다.
    """
    items: List[Dict[str, Any]] = []
    blocks = [b for b in re.split(r"(?m)^(?=\d+\.\s)", response or "") if b.strip()]

    for block in blocks:
        question_match = re.match(r"^\d+\.\s([\s\S]*?)(?=^[A-D]\))", block, re.MULTILINE)
        if not question_match:
            continue
        prompt = question_match.group(1).strip()
        if prompt and not prompt.endswith("?") and "```" not in prompt:
            prompt += "?"

        options: Dict[str, str] = {}
        correct: Optional[str] = None
        explanation = ""
        letter: Optional[str] = None
        buffer: List[str] = []

        lines = block.split("\n")
        for i, raw_line in enumerate(lines):
            line = raw_line.strip()
            option_start = re.match(r"^([A-D])\)\s*(.*)$", line)
            if option_start:
                if letter:
                    options[letter] = "\n".join(buffer).strip()
                letter, buffer = option_start.group(1), [option_start.group(2)]
            elif line.startswith("CORRECT:"):
                if letter:
                    options[letter] = "\n".join(buffer).strip()
                    letter = None
                correct_match = re.match(r"CORRECT:\s*\[?([A-D])\]?", line)
                if correct_match:
                    correct = correct_match.group(1)
            elif line.startswith("EXPLANATION:"):
                parts = [line[len("EXPLANATION:"):].strip()]
                for next_line in lines[i + 1:]:
                    next_line = next_line.strip()
                    if not next_line or re.match(r"^\d+\.", next_line):
                        break
                    parts.append(next_line)
                explanation = " ".join(p for p in parts if p)
                break
            elif letter:
                buffer.append(raw_line.rstrip())

        if letter:
            options[letter] = "\n".join(buffer).strip()

        valid = {k: v for k, v in options.items() if v}
        if len(valid) != OPTION_COUNT or not correct or not prompt:
            continue
        items.append({
            "id": len(items) + 1,
            "question": prompt,
            "options": valid,
            "correct": correct,
            "explanation": explanation,
        })

    return items[:count]


def shuffle_options(question: Question, rng: random.Random) -> Question:
    """보기 순서를 섞고 정답 인덱스를 새 위치로 옮긴다."""
    order = list(range(OPTION_COUNT))
    rng.shuffle(order)
    return question.model_copy(update={
        "options": [question.options[i] for i in order],
        "correct_option_index": order.index(question.correct_option_index),
    })


# ══════════════════════════════════════════════════════════════════════════════
# OpenAI 구현
# ══════════════════════════════════════════════════════════════════════════════

def _build_system_prompt() -> str:
    return (
        "You are an expert technical interviewer who writes multiple-choice questions.\n"
        "Follow the requested output format exactly. Do not add greetings or commentary."
    )


def build_generation_prompt(config: TestConfiguration, rng: random.Random) -> str:
    """설정 → 생성 프롬프트. 매번 다른 초점 영역을 골라 문제 중복을 줄인다."""
    focus = ", ".join(rng.sample(_FOCUS_AREAS, 3 + rng.randint(0, 1)))
    difficulty = _EXPERIENCE_TO_DIFFICULTY[config.experience_level.value]
    specialization = (
        f" with a focus on {config.specialization}" if config.specialization else ""
    )
    return (
        f"Generate exactly {config.question_count} UNIQUE and VARIED multiple-choice questions "
        f'about "{config.topic}"{specialization} with {difficulty} difficulty level '
        f"for a candidate at the {config.experience_level.value} level.\n"
        "\n"
        f"Focus areas for this session: {focus}\n"
        "\n"
        "Format each question exactly as follows:\n"
        "QUESTION_NUMBER. Question text here?\n"
        "A) Option A\n"
        "B) Option B\n"
        "C) Option C\n"
        "D) Option D\n"
        "CORRECT: [A/B/C/D]\n"
        "EXPLANATION: Brief explanation of why this answer is correct.\n"
        "\n"
        "Rules:\n"
        "- Use markdown code fences for code blocks and single backticks for inline code\n"
        "- Options A, B, C, D must each start on a separate line\n"
        "- Include questions with code examples: syntax, output prediction, debugging, best practices\n"
        "- Progressive difficulty, no repeated questions"
    )


class OpenAIQuestionGenerator(QuestionGenerator):
    """OpenAI Chat API로 문제를 생성한다. 동기 API 호출은 스레드로 넘긴다."""

    def __init__(self, api_key: str, rng: Optional[random.Random] = None):
        self._api_key = api_key
        self._rng = rng or random.Random()

    async def generate(self, config: TestConfiguration) -> GeneratedTest:
        if not self._api_key:
            raise ValidationError("OpenAI API key is not set.")
        client = make_client(self._api_key)
        if client is None:
            raise GenerationFailure("Failed to initialise the AI client.")

        prompt = build_generation_prompt(config, self._rng)
        logger.info(
            f"문제 생성 요청: topic={config.topic!r}, level={config.experience_level.value}, "
            f"count={config.question_count}"
        )
        raw = await asyncio.to_thread(call_openai, client, _build_system_prompt(), prompt)
        if raw is None:
            raise GenerationFailure("Failed to generate MCQ test. Please try again.")

        items = parse_mcq_response(raw, config.question_count)
        generated = build_generated_test(items, config.question_count)

        varied = [shuffle_options(q, self._rng) for q in generated.questions_with_answers]
        self._rng.shuffle(varied)
        varied = [q.model_copy(update={"id": i + 1}) for i, q in enumerate(varied)]
        logger.info(f"문제 생성 완료: {len(varied)}개")
        return GeneratedTest(
            questions=[q.public_view() for q in varied],
            questions_with_answers=varied,
        )

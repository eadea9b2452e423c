import asyncio
import random

import pytest

from interview_mcq.errors import GenerationFailure, ValidationError
from interview_mcq.models.session_state import TestConfiguration
from interview_mcq.services import question_generator
from interview_mcq.services.question_generator import (
    OpenAIQuestionGenerator, build_generated_test, build_generation_prompt,
    normalize_question, parse_mcq_response, shuffle_options,
)

from tests.conftest import make_questions


SAMPLE_RESPONSE = """Here are your questions.

1. What does `typeof null` return in JavaScript?
A) "null"
B) "object"
C) "undefined"
D) "number"
CORRECT: B
EXPLANATION: A historical quirk of the language.

2. Which method adds an element to the end of an array
A) push
B) pop
C) shift
D) unshift
CORRECT: [A]
EXPLANATION: push appends and returns the new length.

3. What is printed?
```javascript
console.log(1 + "1");
```
A) 2
B) "11"
C) NaN
D) TypeError
CORRECT: B
EXPLANATION: The number is coerced to a string.
"""


def _raw_letter_keyed(correct="C"):
    return {
        "question": "Which hook manages local state?",
        "options": {"A": "useEffect", "B": "useMemo", "C": "useState", "D": "useRef"},
        "correct": correct,
        "explanation": "useState returns a state pair.",
    }


# ── 정규화 ───────────────────────────────────────────────────────────────────

def test_letter_keyed_options_keep_correct_answer_identity():
    q = normalize_question(_raw_letter_keyed(), fallback_id=1)
    assert q.options == ["useEffect", "useMemo", "useState", "useRef"]
    assert q.correct_option_index == 2
    assert q.options[q.correct_option_index] == "useState"


@pytest.mark.parametrize("answer, expected", [
    ("C", 2), ("[d]", 3), (1, 1), ("0", 0), ("useRef", 3),
])
def test_correct_answer_representations(answer, expected):
    raw = _raw_letter_keyed()
    raw.pop("correct")
    raw["correctAnswer"] = answer
    assert normalize_question(raw, fallback_id=1).correct_option_index == expected


@pytest.mark.parametrize("mutate", [
    lambda r: r.update(options=["a", "b", "c"]),
    lambda r: r.update(options={"A": "a", "B": "b", "C": "c"}),
    lambda r: r.update(options=["a", "b", " ", "d"]),
    lambda r: r.update(correct="E"),
    lambda r: r.pop("correct"),
    lambda r: r.update(question=""),
])
def test_malformed_items_are_rejected(mutate):
    raw = _raw_letter_keyed()
    mutate(raw)
    with pytest.raises(ValueError):
        normalize_question(raw, fallback_id=1)


def test_missing_explanation_gets_placeholder():
    raw = _raw_letter_keyed()
    raw.pop("explanation")
    assert normalize_question(raw, fallback_id=1).explanation == "No explanation provided."


def test_build_generated_test_aligns_public_and_scoring_views():
    raw = [_raw_letter_keyed(), {"question": "broken"}, _raw_letter_keyed("A")]
    generated = build_generated_test(raw, 2)

    assert [q.id for q in generated.questions] == [1, 2]
    for public, full in zip(generated.questions, generated.questions_with_answers):
        assert public.prompt == full.prompt
        assert public.options == full.options
        assert "correct_option_index" not in public.model_dump()
    assert generated.questions_with_answers[1].correct_option_index == 0


def test_build_generated_test_fails_when_too_few_valid_items():
    with pytest.raises(GenerationFailure):
        build_generated_test([_raw_letter_keyed(), {"question": "broken"}], 2)


# ── 텍스트 파싱 ──────────────────────────────────────────────────────────────

def test_parse_text_response():
    items = parse_mcq_response(SAMPLE_RESPONSE, 3)
    assert len(items) == 3

    first, second, third = items
    assert first["correct"] == "B"
    assert first["options"]["B"] == '"object"'
    assert second["question"].endswith("?")
    assert second["correct"] == "A"
    assert "```javascript" in third["question"]
    assert third["explanation"] == "The number is coerced to a string."


def test_parse_text_response_respects_count():
    assert len(parse_mcq_response(SAMPLE_RESPONSE, 2)) == 2


def test_parse_skips_blocks_without_correct_marker():
    text = "1. Incomplete?\nA) a\nB) b\nC) c\nD) d\nEXPLANATION: none\n"
    assert parse_mcq_response(text, 1) == []


def test_shuffle_options_moves_correct_index_with_text():
    q = make_questions(3)[2]
    correct_text = q.options[q.correct_option_index]
    for seed in range(10):
        shuffled = shuffle_options(q, random.Random(seed))
        assert sorted(shuffled.options) == sorted(q.options)
        assert shuffled.options[shuffled.correct_option_index] == correct_text


def test_prompt_mentions_configuration():
    config = TestConfiguration(
        topic="React", experience_level="advanced", specialization="Hooks", question_count=15,
    )
    prompt = build_generation_prompt(config, random.Random(1))
    assert "exactly 15" in prompt
    assert '"React" with a focus on Hooks' in prompt
    assert "hard difficulty" in prompt


# ── OpenAI 생성기 ────────────────────────────────────────────────────────────

def test_generator_requires_api_key():
    config = TestConfiguration(topic="Go", experience_level="beginner", question_count=10)
    with pytest.raises(ValidationError):
        asyncio.run(OpenAIQuestionGenerator("").generate(config))


def test_generator_parses_shuffles_and_renumbers(monkeypatch):
    calls = []

    def fake_call(client, system_prompt, user_content, **kwargs):
        calls.append(user_content)
        return SAMPLE_RESPONSE

    monkeypatch.setattr(question_generator, "call_openai", fake_call)
    config = TestConfiguration(topic="JavaScript", experience_level="beginner", question_count=10)
    config = config.model_copy(update={"question_count": 3})

    generated = asyncio.run(OpenAIQuestionGenerator("sk-test", rng=random.Random(3)).generate(config))

    assert len(calls) == 1
    assert [q.id for q in generated.questions_with_answers] == [1, 2, 3]
    correct_texts = {
        q.options[q.correct_option_index] for q in generated.questions_with_answers
    }
    assert correct_texts == {'"object"', "push", '"11"'}


def test_generator_reports_upstream_failure(monkeypatch):
    monkeypatch.setattr(question_generator, "call_openai", lambda *a, **k: None)
    config = TestConfiguration(topic="Go", experience_level="beginner", question_count=10)
    with pytest.raises(GenerationFailure):
        asyncio.run(OpenAIQuestionGenerator("sk-test").generate(config))

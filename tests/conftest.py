import asyncio
from typing import List, Optional

import pytest

from interview_mcq.errors import GenerationFailure, SubmissionTransportError
from interview_mcq.models.question_model import Question
from interview_mcq.models.session_state import TestConfiguration, TestResult
from interview_mcq.services.question_generator import GeneratedTest, QuestionGenerator
from interview_mcq.services.scoring_service import Scorer, ScoringRequest, ScoringService
from interview_mcq.services.test_session import TestSession


def make_questions(count: int) -> List[Question]:
    """정답 인덱스가 i % 4 인 문제 세트."""
    return [
        Question(
            id=i + 1,
            prompt=f"Question {i + 1}?",
            options=[f"q{i + 1}-opt{j}" for j in range(4)],
            correct_option_index=i % 4,
            explanation=f"Because of {i % 4}.",
        )
        for i in range(count)
    ]


class FakeGenerator(QuestionGenerator):

    def __init__(self, failures: int = 0):
        self.calls: List[TestConfiguration] = []
        self.failures = failures

    async def generate(self, config: TestConfiguration) -> GeneratedTest:
        self.calls.append(config)
        if self.failures:
            self.failures -= 1
            raise GenerationFailure("upstream AI error")
        questions = make_questions(config.question_count)
        return GeneratedTest(
            questions=[q.public_view() for q in questions],
            questions_with_answers=questions,
        )


class FakeScorer(Scorer):
    """채점 호출 횟수를 세고, 필요하면 gate로 응답을 붙잡아 둔다."""

    def __init__(self, failures: int = 0, gate: Optional[asyncio.Event] = None):
        self.requests: List[ScoringRequest] = []
        self.failures = failures
        self.gate = gate
        self._delegate = ScoringService()

    async def score(self, request: ScoringRequest) -> TestResult:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            self.failures -= 1
            raise SubmissionTransportError("network down")
        return await self._delegate.score(request)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def scorer():
    return FakeScorer()


@pytest.fixture
def new_session(generator, scorer):
    def _factory(question_count: int = 10, topic: str = "JavaScript") -> TestSession:
        s = TestSession(generator, scorer, clock=lambda: 1_000.0)
        s.configure(topic, "beginner", None, question_count)
        return s
    return _factory


@pytest.fixture
def started_session(new_session):
    s = new_session()
    asyncio.run(s.start())
    return s

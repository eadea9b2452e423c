"""
services/navigator.py

문제 번호 네비게이터 그리드용 읽기 전용 뷰 모델.

각 문제는 정확히 하나의 상태로 분류된다:
  - answered-and-marked : 확정 답안 + 검토 표시
  - answered            : 확정 답안
  - marked-only         : 검토 표시만
  - not-answered        : 방문했지만 답 없음
  - not-visited         : 아직 보지 않음
상태별 개수의 합은 항상 전체 문제 수와 같다.
"""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel

from interview_mcq.models.session_state import ExamState


class QuestionStatus(str, Enum):
    NOT_VISITED = "not-visited"
    NOT_ANSWERED = "not-answered"
    ANSWERED = "answered"
    MARKED_ONLY = "marked-only"
    ANSWERED_AND_MARKED = "answered-and-marked"


class NavigatorCell(BaseModel):
    index: int
    number: int
    status: QuestionStatus
    is_current: bool


class NavigatorView(BaseModel):
    cells: List[NavigatorCell]
    counts: Dict[QuestionStatus, int]
    total: int
    answered_count: int


def classify(index: int, state: ExamState) -> QuestionStatus:
    answered = index in state.answers
    marked = index in state.marked_for_review
    if answered and marked:
        return QuestionStatus.ANSWERED_AND_MARKED
    if answered:
        return QuestionStatus.ANSWERED
    if marked:
        return QuestionStatus.MARKED_ONLY
    if index in state.visited:
        return QuestionStatus.NOT_ANSWERED
    return QuestionStatus.NOT_VISITED


def build_navigator(state: ExamState, total: int) -> NavigatorView:
    cells = [
        NavigatorCell(
            index=idx,
            number=idx + 1,
            status=classify(idx, state),
            is_current=idx == state.current_index,
        )
        for idx in range(total)
    ]
    counts = {status: 0 for status in QuestionStatus}
    for cell in cells:
        counts[cell.status] += 1
    return NavigatorView(
        cells=cells,
        counts=counts,
        total=total,
        answered_count=counts[QuestionStatus.ANSWERED] + counts[QuestionStatus.ANSWERED_AND_MARKED],
    )

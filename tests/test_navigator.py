import asyncio
import random

from interview_mcq.models.session_state import ExamState
from interview_mcq.services.navigator import QuestionStatus, build_navigator, classify


def test_classification_covers_every_category():
    state = ExamState(
        current_index=3,
        answers={0: 1, 1: 2},
        marked_for_review={1, 2},
        visited={0, 1, 3},
    )
    assert classify(0, state) is QuestionStatus.ANSWERED
    assert classify(1, state) is QuestionStatus.ANSWERED_AND_MARKED
    assert classify(2, state) is QuestionStatus.MARKED_ONLY
    assert classify(3, state) is QuestionStatus.NOT_ANSWERED
    assert classify(4, state) is QuestionStatus.NOT_VISITED


def test_view_marks_current_cell_and_counts_answers():
    state = ExamState(current_index=2, answers={0: 0, 2: 3}, marked_for_review={2}, visited={0, 1, 2})
    view = build_navigator(state, 5)

    assert [c.is_current for c in view.cells] == [False, False, True, False, False]
    assert view.answered_count == 2
    assert view.counts[QuestionStatus.NOT_VISITED] == 2
    assert [c.number for c in view.cells] == [1, 2, 3, 4, 5]


def test_counts_always_sum_to_total_during_random_session(started_session):
    rng = random.Random(7)
    for _ in range(200):
        action = rng.choice(["select_commit", "jump", "mark", "clear", "commit"])
        idx = rng.randrange(started_session.total_questions)
        if action == "select_commit":
            started_session.select_answer(started_session.state.current_index, rng.randrange(4))
            started_session.commit_and_advance()
        elif action == "jump":
            started_session.jump_to(idx)
        elif action == "mark":
            started_session.toggle_mark_for_review(idx)
        elif action == "clear":
            started_session.clear_answer(idx)
        else:
            started_session.commit_and_advance()

        view = build_navigator(started_session.state, started_session.total_questions)
        assert sum(view.counts.values()) == started_session.total_questions
        assert len(view.cells) == started_session.total_questions


def test_fresh_session_shows_only_first_question_visited(new_session):
    s = new_session(question_count=15)
    asyncio.run(s.start())
    view = build_navigator(s.state, s.total_questions)
    assert view.counts[QuestionStatus.NOT_ANSWERED] == 1
    assert view.counts[QuestionStatus.NOT_VISITED] == 14

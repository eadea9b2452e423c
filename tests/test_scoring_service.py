import asyncio

from interview_mcq.models.session_state import SubmitReason, UserInfo, ViolationLedger
from interview_mcq.services.history_store import HistoryStore
from interview_mcq.services.notification_service import NotificationCenter, NotificationType
from interview_mcq.services.scoring_service import ScoringRequest, ScoringService

from tests.conftest import make_questions


def _request(**overrides):
    fields = dict(
        topic="Python",
        answers={0: 0, 1: 1, 2: 0},
        questions=make_questions(4),
        user_info=UserInfo(id="u-1", name="Dana"),
        question_count=4,
        time_spent_seconds=300,
    )
    fields.update(overrides)
    return ScoringRequest(**fields)


class BrokenHistory(HistoryStore):
    def add(self, record):
        raise RuntimeError("disk full")


class BrokenNotifier(NotificationCenter):
    def dispatch(self, *args, **kwargs):
        raise RuntimeError("smtp down")


class FailingWriter:
    async def write(self, request, score, correct):
        raise RuntimeError("quota exceeded")


class FixedWriter:
    async def write(self, request, score, correct):
        return f"Nice work on {request.topic}: {correct} right."


def test_scores_committed_answers():
    result = asyncio.run(ScoringService().score(_request()))
    assert result.correct_count == 2
    assert result.score == 50
    assert result.grade == "D"
    assert result.time_spent_seconds == 300
    assert result.test_status is SubmitReason.MANUAL
    assert result.integrity_note is None


def test_feedback_falls_back_when_writer_fails():
    result = asyncio.run(ScoringService(feedback_writer=FailingWriter()).score(_request()))
    assert "Dana" in result.feedback


def test_feedback_writer_text_is_used():
    result = asyncio.run(ScoringService(feedback_writer=FixedWriter()).score(_request()))
    assert result.feedback == "Nice work on Python: 2 right."


def test_storage_and_notification_failures_do_not_block_result():
    service = ScoringService(history=BrokenHistory(), notifier=BrokenNotifier())
    result = asyncio.run(service.score(_request()))
    assert result.score == 50


def test_result_is_recorded_and_notified():
    history, notes = HistoryStore(), NotificationCenter()
    asyncio.run(ScoringService(history=history, notifier=notes).score(_request()))

    (record,) = history.list_for("u-1")
    assert record.score == 50
    assert record.user_answers == {0: 0, 1: 1, 2: 0}
    (note,) = notes.list_for("u-1")
    assert note.type is NotificationType.SUCCESS


def test_auto_submission_carries_integrity_warning():
    notes = NotificationCenter()
    request = _request(
        violation_summary=ViolationLedger(tab_switches=3),
        reason=SubmitReason.VIOLATIONS,
    )
    result = asyncio.run(ScoringService(notifier=notes).score(request))

    assert result.integrity_note.startswith("3 integrity warning(s)")
    (note,) = notes.list_for("u-1")
    assert note.type is NotificationType.WARNING
    assert "integrity" in note.message


def test_history_stats_and_ordering():
    history = HistoryStore()
    service = ScoringService(history=history)
    asyncio.run(service.score(_request(answers={})))
    asyncio.run(service.score(_request(answers={0: 0, 1: 1, 2: 2, 3: 3})))

    records = history.list_for("u-1")
    assert [r.score for r in records] == [100, 0]
    assert history.stats_for("u-1") == {"total_tests": 2, "average_score": 50.0, "best_score": 100}
    assert history.stats_for("nobody")["total_tests"] == 0


def test_notification_inbox_read_state():
    notes = NotificationCenter()
    first = notes.dispatch("u-1", NotificationType.INFO, "a", "one")
    notes.dispatch("u-1", kind=NotificationType.WARNING, title="b", message="two")

    assert notes.unread_count("u-1") == 2
    assert notes.mark_read("u-1", first.id) is True
    assert notes.mark_read("u-1", 999) is False
    assert [n.title for n in notes.list_for("u-1", unread_only=True)] == ["b"]
    assert notes.mark_all_read("u-1") == 1
    assert notes.unread_count("u-1") == 0


def test_history_limit_returns_newest_records():
    history = HistoryStore()
    service = ScoringService(history=history)
    for answers in ({}, {0: 0}, {0: 0, 1: 1}):
        asyncio.run(service.score(_request(answers=answers)))

    assert [r.score for r in history.list_for("u-1", limit=2)] == [50, 25]
    assert len(history.list_for("u-1")) == 3

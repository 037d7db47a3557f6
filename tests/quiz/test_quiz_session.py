"""Tests for the quiz session state machine."""

import pytest

from src.quiz.payload import QuizPayload, decode_quiz_payload
from src.quiz.session import (
    EMPTY_QUIZ_MESSAGE,
    NOT_ANSWERED,
    InvalidOptionError,
    QuizSession,
    QuizState,
    ScoreTier,
    score_tier,
)


def make_payload(n: int) -> QuizPayload:
    """N questions, option "a" correct and "b" wrong on each."""
    return decode_quiz_payload(
        {
            "questions": [
                {
                    "id": i,
                    "text": f"Question {i}",
                    "options": [
                        {"id": "a", "text": f"right {i}", "isCorrect": True},
                        {"id": "b", "text": f"wrong {i}", "isCorrect": False},
                    ],
                }
                for i in range(1, n + 1)
            ]
        }
    )


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []

    def __call__(self, score: int, total: int) -> None:
        self.calls.append((score, total))


def answer_all(session: QuizSession, choices: list[str]) -> None:
    for i, choice in enumerate(choices):
        assert session.select(i, choice) is True
        assert session.advance() is True


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestCompletion:
    @pytest.mark.parametrize("n", [1, 2, 5])
    @pytest.mark.parametrize("pattern", ["all_right", "all_wrong", "alternating"])
    def test_results_reached_once_with_counted_score(
        self, n: int, pattern: str, recorder: Recorder
    ) -> None:
        choices = {
            "all_right": ["a"] * n,
            "all_wrong": ["b"] * n,
            "alternating": ["a" if i % 2 == 0 else "b" for i in range(n)],
        }[pattern]
        session = QuizSession(make_payload(n), on_complete=recorder)

        answer_all(session, choices)

        assert session.state is QuizState.RESULTS
        assert session.score == choices.count("a")
        assert recorder.calls == [(choices.count("a"), n)]

        # Further advances do nothing once results are shown
        assert session.advance() is False
        assert recorder.calls == [(choices.count("a"), n)]

    def test_one_right_one_wrong(self, recorder: Recorder) -> None:
        session = QuizSession(make_payload(2), on_complete=recorder)
        answer_all(session, ["a", "b"])

        results = session.results()
        assert results.score == 1
        assert results.total == 2
        assert results.percentage == 50
        assert results.display_percentage == 50
        assert results.tier is ScoreTier.MEDIUM
        assert [r.is_correct for r in results.review] == [True, False]
        assert results.review[1].selected_text == "wrong 2"
        assert results.review[1].correct_text == "right 2"

    def test_all_right_fires_callback_once(self, recorder: Recorder) -> None:
        session = QuizSession(make_payload(2), on_complete=recorder)
        answer_all(session, ["a", "a"])

        assert session.results().percentage == 100
        assert session.results().tier is ScoreTier.HIGH
        assert recorder.calls == [(2, 2)]

    def test_display_percentage_rounds_half_up(self) -> None:
        session = QuizSession(make_payload(8))
        answer_all(session, ["a"] + ["b"] * 7)
        assert session.results().percentage == 12.5
        assert session.results().display_percentage == 13


class TestAdvance:
    def test_advance_without_selection_is_noop(self) -> None:
        session = QuizSession(make_payload(3))
        assert session.advance() is False
        assert session.index == 0
        assert session.state is QuizState.ANSWERING

    def test_select_does_not_advance(self) -> None:
        session = QuizSession(make_payload(3))
        session.select(0, "a")
        assert session.index == 0
        assert session.selections == ("a", None, None)

    def test_select_other_question_is_ignored(self) -> None:
        session = QuizSession(make_payload(3))
        assert session.select(1, "a") is False
        assert session.selections == (None, None, None)

    def test_unknown_option_rejected(self) -> None:
        session = QuizSession(make_payload(1))
        with pytest.raises(InvalidOptionError):
            session.select(0, "zzz")

    def test_numeric_option_ids_match(self) -> None:
        payload = decode_quiz_payload(
            '{"questions": [{"id": 1, "text": "Q", "options": ['
            '{"id": 1, "text": "x", "isCorrect": true}, {"id": 2, "text": "y"}]}]}'
        )
        session = QuizSession(payload)
        assert session.select(0, 1) is True
        assert session.advance() is True
        assert session.score == 1


class TestRetreat:
    def test_retreat_from_first_is_noop(self) -> None:
        session = QuizSession(make_payload(2))
        assert session.retreat() is False
        assert session.index == 0

    def test_retreat_keeps_answer(self) -> None:
        session = QuizSession(make_payload(3))
        answer_all(session, ["a"])
        session.select(1, "b")

        assert session.retreat() is True
        assert session.index == 0
        assert session.selections == ("a", "b", None)


class TestRetry:
    def test_retry_from_results(self, recorder: Recorder) -> None:
        session = QuizSession(make_payload(2), on_complete=recorder)
        answer_all(session, ["a", "a"])

        session.retry()
        assert session.index == 0
        assert session.selections == (None, None)
        assert session.showing_results is False
        assert session.score == 0
        assert session.state is QuizState.ANSWERING

    def test_retry_is_idempotent(self) -> None:
        session = QuizSession(make_payload(2))
        session.select(0, "a")
        session.advance()

        session.retry()
        first = (session.index, session.selections, session.showing_results)
        session.retry()
        assert (session.index, session.selections, session.showing_results) == first

    def test_new_run_fires_callback_again(self, recorder: Recorder) -> None:
        session = QuizSession(make_payload(1), on_complete=recorder)
        answer_all(session, ["a"])
        session.retry()
        answer_all(session, ["b"])
        assert recorder.calls == [(1, 1), (0, 1)]


class TestEmptyQuiz:
    def test_never_answering(self, recorder: Recorder) -> None:
        session = QuizSession(QuizPayload(), on_complete=recorder)

        assert session.state is QuizState.EMPTY
        assert session.empty_message == EMPTY_QUIZ_MESSAGE
        assert session.current_question is None
        assert session.advance() is False
        assert session.select(0, "a") is False
        session.retry()
        assert session.state is QuizState.EMPTY
        assert recorder.calls == []

    def test_no_results(self) -> None:
        with pytest.raises(RuntimeError):
            QuizSession(QuizPayload()).results()


class TestScoreTier:
    @pytest.mark.parametrize(
        "score,total,tier",
        [
            (7, 10, ScoreTier.HIGH),
            (4, 10, ScoreTier.MEDIUM),
            (3, 10, ScoreTier.LOW),
            (0, 0, ScoreTier.LOW),
        ],
    )
    def test_thresholds(self, score: int, total: int, tier: ScoreTier) -> None:
        assert score_tier(score, total) is tier


def test_not_answered_label() -> None:
    assert NOT_ANSWERED == "Not answered"

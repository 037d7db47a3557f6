"""Quiz session state machine.

Presents a fixed, ordered list of questions one at a time and grades the
run. States:

- EMPTY: the quiz has no questions; nothing can be answered
- ANSWERING: a question is on screen
- RESULTS: every question was answered and the score is final

Transitions are synchronous. `on_complete(score, total)` fires exactly once
per completed run; `retry()` starts a new run.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Final

import structlog

from src.utils.percent import round_half_up

from .payload import QuizPayload, QuizQuestion


logger = structlog.get_logger(__name__)

UNANSWERED: Final = None
EMPTY_QUIZ_MESSAGE: Final = "No questions available for this quiz."
NOT_ANSWERED: Final = "Not answered"

HIGH_TIER_RATIO: Final = 0.7
MEDIUM_TIER_RATIO: Final = 0.4


class QuizState(str, Enum):
    EMPTY = "empty"
    ANSWERING = "answering"
    RESULTS = "results"


class ScoreTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InvalidOptionError(ValueError):
    """Selected option does not belong to the current question."""


def score_tier(score: int, total: int) -> ScoreTier:
    """Tier of a score: >= 70% high, >= 40% medium, otherwise low."""
    ratio = score / total if total else 0.0
    if ratio >= HIGH_TIER_RATIO:
        return ScoreTier.HIGH
    if ratio >= MEDIUM_TIER_RATIO:
        return ScoreTier.MEDIUM
    return ScoreTier.LOW


@dataclass(frozen=True)
class FinalAnswer:
    question_id: str
    selected_option: str


@dataclass(frozen=True)
class QuestionReview:
    """Per-question line of the results view."""

    question_id: str
    question_text: str
    selected_text: str
    correct_text: str
    is_correct: bool


@dataclass(frozen=True)
class QuizResults:
    score: int
    total: int
    percentage: float
    display_percentage: int
    tier: ScoreTier
    review: list[QuestionReview]


class QuizSession:
    """One learner working through one quiz."""

    def __init__(
        self,
        payload: QuizPayload,
        on_complete: Callable[[int, int], None] | None = None,
    ) -> None:
        self._questions: tuple[QuizQuestion, ...] = tuple(payload.questions)
        self._on_complete = on_complete
        self.retry()

    # ==========================================================================
    # Read-only view
    # ==========================================================================

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def state(self) -> QuizState:
        if not self._questions:
            return QuizState.EMPTY
        if self._showing_results:
            return QuizState.RESULTS
        return QuizState.ANSWERING

    @property
    def index(self) -> int:
        return self._index

    @property
    def score(self) -> int:
        return self._score

    @property
    def showing_results(self) -> bool:
        return self._showing_results

    @property
    def selections(self) -> tuple[str | None, ...]:
        return tuple(self._selected)

    @property
    def answers(self) -> list[FinalAnswer]:
        """Finalised answers, in question order."""
        return [a for a in self._finalised if a is not None]

    @property
    def current_question(self) -> QuizQuestion | None:
        if self.state is not QuizState.ANSWERING:
            return None
        return self._questions[self._index]

    @property
    def progress(self) -> float:
        """Percent of the way through while answering."""
        if self.state is not QuizState.ANSWERING:
            return 0.0
        return (self._index + 1) / self.total * 100

    @property
    def empty_message(self) -> str | None:
        return EMPTY_QUIZ_MESSAGE if self.state is QuizState.EMPTY else None

    # ==========================================================================
    # Transitions
    # ==========================================================================

    def select(self, question_index: int, option_id: str | int) -> bool:
        """Record an option for the current question. Does not advance.

        Returns:
            False when the call names another question or the quiz is not
            being answered (nothing changes)

        Raises:
            InvalidOptionError: If the option is not one of the question's
        """
        if self.state is not QuizState.ANSWERING or question_index != self._index:
            return False

        option_id = str(option_id)
        question = self._questions[self._index]
        if question.option(option_id) is None:
            msg = f"Option {option_id} is not part of question {question.id}"
            raise InvalidOptionError(msg)

        self._selected[self._index] = option_id
        return True

    def advance(self) -> bool:
        """Finalise the current answer and move on, or grade the run.

        Returns:
            False (and nothing changes) when the current question has no
            selection or the quiz is not being answered
        """
        if self.state is not QuizState.ANSWERING:
            return False

        selected = self._selected[self._index]
        if selected is UNANSWERED:
            return False

        question = self._questions[self._index]
        self._finalised[self._index] = FinalAnswer(question.id, selected)

        if self._index < self.total - 1:
            self._index += 1
            return True

        self._score = sum(
            1
            for question, option_id in zip(self._questions, self._selected, strict=True)
            if option_id is not UNANSWERED
            and (option := question.option(option_id)) is not None
            and option.is_correct
        )
        self._showing_results = True

        logger.debug("quiz_graded", score=self._score, total=self.total)
        if self._on_complete is not None:
            self._on_complete(self._score, self.total)
        return True

    def retreat(self) -> bool:
        """Go back one question. Answers are kept."""
        if self.state is not QuizState.ANSWERING or self._index == 0:
            return False
        self._index -= 1
        return True

    def retry(self) -> None:
        """Start over: first question, nothing selected, no score."""
        self._index = 0
        self._selected: list[str | None] = [UNANSWERED] * self.total
        self._finalised: list[FinalAnswer | None] = [None] * self.total
        self._score = 0
        self._showing_results = False

    # ==========================================================================
    # Results
    # ==========================================================================

    def results(self) -> QuizResults:
        """The graded view.

        Raises:
            RuntimeError: If the run is not finished
        """
        if self.state is not QuizState.RESULTS:
            msg = f"No results while {self.state.value}"
            raise RuntimeError(msg)

        review = []
        for question, option_id in zip(self._questions, self._selected, strict=True):
            selected = question.option(option_id) if option_id is not UNANSWERED else None
            correct = question.correct_option
            review.append(
                QuestionReview(
                    question_id=question.id,
                    question_text=question.text,
                    selected_text=selected.text if selected else NOT_ANSWERED,
                    correct_text=correct.text if correct else "",
                    is_correct=bool(selected and selected.is_correct),
                )
            )

        percentage = self._score / self.total * 100
        return QuizResults(
            score=self._score,
            total=self.total,
            percentage=percentage,
            display_percentage=round_half_up(percentage),
            tier=score_tier(self._score, self.total),
            review=review,
        )

"""Quiz payload decoding.

A quiz lesson stores its questions as encoded JSON in `lessons.quiz_data`:

    {"questions": [{"id": 1, "text": "...", "options": [
        {"id": 1, "text": "...", "isCorrect": true}, ...]}]}

`decode_quiz_payload` is the only place that payload is decoded. It fails
closed: anything malformed becomes an empty quiz.
"""

from collections.abc import Mapping
from typing import Annotated, Any

import orjson
import structlog
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError


logger = structlog.get_logger(__name__)

MIN_OPTIONS = 2


def _normalize_id(value: Any) -> Any:
    # Ids come from a JSON editor as numbers or strings
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float | str):
        return str(value).strip()
    return value


QuizId = Annotated[str, BeforeValidator(_normalize_id), Field(min_length=1)]


class QuizOption(BaseModel):
    """One labeled choice of a question."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: QuizId
    text: str
    is_correct: bool = Field(default=False, alias="isCorrect")


class QuizQuestion(BaseModel):
    """A question with its ordered options."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: QuizId
    text: str
    options: list[QuizOption] = Field(default_factory=list)

    def option(self, option_id: str) -> QuizOption | None:
        """Find an option by id."""
        return next((o for o in self.options if o.id == option_id), None)

    @property
    def correct_option(self) -> QuizOption | None:
        return next((o for o in self.options if o.is_correct), None)


class QuizPayload(BaseModel):
    """Decoded quiz: an ordered list of questions."""

    model_config = ConfigDict(frozen=True)

    questions: list[QuizQuestion] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.questions

    def encode(self) -> str:
        """Encode back to the stored JSON form (camelCase keys)."""
        return orjson.dumps(self.model_dump(by_alias=True)).decode()


def decode_quiz_payload(
    raw: str | bytes | Mapping[str, Any] | QuizPayload | None,
) -> QuizPayload:
    """Decode a stored quiz payload exactly once.

    Accepts encoded JSON text or an already-parsed mapping. Never raises:
    malformed input yields an empty payload.
    """
    if raw is None:
        return QuizPayload()
    if isinstance(raw, QuizPayload):
        return raw

    try:
        data = orjson.loads(raw) if isinstance(raw, str | bytes) else raw
        if not isinstance(data, Mapping):
            msg = f"expected an object, got {type(data).__name__}"
            raise TypeError(msg)
        return QuizPayload.model_validate(dict(data))
    except (orjson.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning("quiz_payload_invalid", error=str(e))
        return QuizPayload()


def check_gradable(payload: QuizPayload) -> QuizPayload:
    """Validate a payload before it is stored on a lesson.

    Raises:
        ValueError: If the quiz has no questions, repeats ids, or a question
            does not have exactly one correct option
    """
    if payload.is_empty:
        msg = "A quiz needs at least one question"
        raise ValueError(msg)

    question_ids = [q.id for q in payload.questions]
    if len(set(question_ids)) != len(question_ids):
        msg = "Question ids must be unique"
        raise ValueError(msg)

    for question in payload.questions:
        option_ids = [o.id for o in question.options]
        if len(option_ids) < MIN_OPTIONS:
            msg = f"Question {question.id} needs at least two options"
            raise ValueError(msg)
        if len(set(option_ids)) != len(option_ids):
            msg = f"Option ids of question {question.id} must be unique"
            raise ValueError(msg)
        correct = sum(1 for o in question.options if o.is_correct)
        if correct != 1:
            msg = f"Question {question.id} must have exactly one correct option"
            raise ValueError(msg)

    return payload

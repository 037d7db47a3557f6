"""Quiz lessons.

Provides:
- Payload decoding for the questions stored on a quiz lesson
- QuizSession, the one-question-at-a-time grading state machine
"""

from .payload import QuizOption, QuizPayload, QuizQuestion, decode_quiz_payload
from .session import QuizResults, QuizSession, QuizState


__all__ = [
    "QuizOption",
    "QuizPayload",
    "QuizQuestion",
    "QuizResults",
    "QuizSession",
    "QuizState",
    "decode_quiz_payload",
]

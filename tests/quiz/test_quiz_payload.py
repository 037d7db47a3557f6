"""Tests for quiz payload decoding."""

import pytest

from src.quiz.payload import QuizPayload, check_gradable, decode_quiz_payload


VALID = (
    '{"questions": [{"id": 1, "text": "2 + 2?", "options": ['
    '{"id": 1, "text": "4", "isCorrect": true},'
    '{"id": 2, "text": "5", "isCorrect": false}]}]}'
)


class TestDecode:
    def test_valid_payload(self) -> None:
        payload = decode_quiz_payload(VALID)

        assert len(payload.questions) == 1
        question = payload.questions[0]
        assert question.id == "1"
        assert question.correct_option is not None
        assert question.correct_option.text == "4"

    def test_mapping_accepted(self) -> None:
        payload = decode_quiz_payload({"questions": []})
        assert payload.is_empty

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "not json",
            "[1, 2, 3]",
            '{"questions": "nope"}',
            '{"questions": [{"text": "missing id"}]}',
            b"\xff\xfe",
        ],
    )
    def test_malformed_fails_closed(self, raw) -> None:
        assert decode_quiz_payload(raw).is_empty

    def test_already_decoded_passes_through(self) -> None:
        payload = decode_quiz_payload(VALID)
        assert decode_quiz_payload(payload) is payload

    def test_encode_keeps_stored_form(self) -> None:
        encoded = decode_quiz_payload(VALID).encode()
        assert '"isCorrect":true' in encoded
        assert decode_quiz_payload(encoded) == decode_quiz_payload(VALID)


class TestCheckGradable:
    def test_valid(self) -> None:
        payload = decode_quiz_payload(VALID)
        assert check_gradable(payload) is payload

    def test_empty(self) -> None:
        with pytest.raises(ValueError, match="at least one question"):
            check_gradable(QuizPayload())

    def test_two_correct_options(self) -> None:
        payload = decode_quiz_payload(VALID.replace("false", "true"))
        with pytest.raises(ValueError, match="exactly one correct"):
            check_gradable(payload)

    def test_single_option(self) -> None:
        payload = decode_quiz_payload(
            {"questions": [{"id": 1, "text": "Q", "options": [{"id": 1, "text": "x"}]}]}
        )
        with pytest.raises(ValueError, match="two options"):
            check_gradable(payload)

    def test_duplicate_question_ids(self) -> None:
        question = {
            "id": 1,
            "text": "Q",
            "options": [
                {"id": 1, "text": "x", "isCorrect": True},
                {"id": 2, "text": "y"},
            ],
        }
        payload = decode_quiz_payload({"questions": [question, question]})
        with pytest.raises(ValueError, match="unique"):
            check_gradable(payload)

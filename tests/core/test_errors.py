"""Tests for core/errors.py module."""

from __future__ import annotations

import dataclasses

import pytest

from similo.core.errors import (
    ConfigError,
    DirectoryError,
    EmbeddingError,
    EmbeddingErrorKind,
    ErrorCode,
    InternalError,
    SimiloError,
)


class TestSimiloError:
    def test_to_dict(self) -> None:
        error = DirectoryError.invalid_path("/nope", "does not exist")

        assert error.to_dict() == {
            "code": 3001,
            "error": "DIRECTORY_INVALID_PATH",
            "message": "Invalid directory /nope: does not exist",
            "retryable": False,
            "details": {"path": "/nope", "reason": "does not exist"},
        }

    def test_str_includes_code_and_name(self) -> None:
        error = ConfigError.file_not_found("/etc/similo.yaml")

        assert str(error) == "[2004] CONFIG_FILE_NOT_FOUND: Config file not found: /etc/similo.yaml"

    def test_is_immutable(self) -> None:
        error = InternalError.unexpected("boom", step="search")

        with pytest.raises(dataclasses.FrozenInstanceError):
            error.message = "changed"  # type: ignore[misc]

    def test_can_be_raised_and_caught_as_base(self) -> None:
        with pytest.raises(SimiloError) as exc_info:
            raise InternalError.unexpected("boom", step="search")

        assert exc_info.value.details == {"step": "search"}
        assert exc_info.value.code == ErrorCode.INTERNAL_ERROR


class TestEmbeddingError:
    @pytest.mark.parametrize(
        ("error", "kind", "retryable"),
        [
            (
                EmbeddingError.connection_failed("http://localhost:11434", "refused"),
                EmbeddingErrorKind.CONNECTION_FAILED,
                True,
            ),
            (EmbeddingError.model_not_found("m"), EmbeddingErrorKind.MODEL_NOT_FOUND, False),
            (
                EmbeddingError.context_length_exceeded("m", 90000),
                EmbeddingErrorKind.CONTEXT_LENGTH_EXCEEDED,
                False,
            ),
            (EmbeddingError.server_error("bad", 500), EmbeddingErrorKind.SERVER_ERROR, False),
        ],
    )
    def test_kind_and_retryable(
        self, error: EmbeddingError, kind: EmbeddingErrorKind, retryable: bool
    ) -> None:
        assert error.kind is kind
        assert error.retryable is retryable

    def test_server_error_status_code_is_optional(self) -> None:
        assert "status_code" not in EmbeddingError.server_error("bad").details
        assert EmbeddingError.server_error("bad", 502).details["status_code"] == 502

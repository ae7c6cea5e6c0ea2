from __future__ import annotations

import pytest

from ledger_demo.errors import (
    ApiError,
    ApiErrorKind,
    CircuitOpenError,
    ConfigurationError,
    GenerationError,
    handle_error,
    is_conflict_error,
)


@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (None, ApiErrorKind.NETWORK),
        (409, ApiErrorKind.CONFLICT),
        (404, ApiErrorKind.NOT_FOUND),
        (422, ApiErrorKind.VALIDATION),
        (401, ApiErrorKind.AUTH),
        (429, ApiErrorKind.RATE_LIMITED),
        (502, ApiErrorKind.SERVER),
        (302, ApiErrorKind.UNKNOWN),
    ],
)
def test_api_error_kind_from_status(status: int | None, kind: ApiErrorKind) -> None:
    assert ApiErrorKind.from_status(status) is kind
    assert ApiError("boom", status_code=status).kind is kind


class TestIsConflictError:
    def test_structured_conflict(self) -> None:
        assert is_conflict_error(ApiError("duplicate", status_code=409))

    def test_structured_status_is_authoritative(self) -> None:
        # message mentions a conflict but the service answered 500
        assert not is_conflict_error(ApiError("conflict resolver crashed", status_code=500))

    @pytest.mark.parametrize(
        "message",
        ["Organization already exists", "CONFLICT on create", "HTTP 409 returned"],
    )
    def test_foreign_exceptions_use_message_markers(self, message: str) -> None:
        assert is_conflict_error(RuntimeError(message))

    def test_unrelated_error(self) -> None:
        assert not is_conflict_error(TimeoutError("read timed out"))


def test_handle_error_wraps_foreign_exceptions() -> None:
    wrapped = handle_error(KeyError("ledger"), {"entity_type": "ledger"})

    assert isinstance(wrapped, GenerationError)
    assert wrapped.error_code == "KEYERROR"
    assert wrapped.context == {"entity_type": "ledger"}
    assert isinstance(wrapped.original_error, KeyError)


def test_handle_error_enriches_generation_errors_in_place() -> None:
    original = CircuitOpenError("breaker open", breaker_name="asset-generator")

    wrapped = handle_error(original, {"parent_id": "ldg-1"})

    assert wrapped is original
    assert wrapped.context == {"breaker": "asset-generator", "parent_id": "ldg-1"}


def test_configuration_errors_are_not_recoverable() -> None:
    error = ConfigurationError("bad volume", config_key="volume.ledgers")

    payload = error.to_dict()
    assert payload["error_code"] == "CONFIG_ERROR"
    assert payload["recoverable"] is False
    assert payload["context"] == {"config_key": "volume.ledgers"}

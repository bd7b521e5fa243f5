"""Tests for restore error classification."""

import pytest

from core.restore_errors import (
    GENERIC,
    LOCATION_MISMATCH,
    LOCATION_MISMATCH_GUIDANCE,
    classify_restore_error,
    error_text,
)


@pytest.mark.parametrize(
    "payload",
    [
        "The location of bucket gs://b does not match the database location",
        "FAILED_PRECONDITION: Bucket gs://b is in LOCATION us-east1",
        {"code": 9, "message": "bucket location mismatch"},
    ],
)
def test_location_mismatch_detected(payload):
    error = classify_restore_error(payload)

    assert error.kind == LOCATION_MISMATCH
    assert error.is_location_mismatch
    assert error.guidance == LOCATION_MISMATCH_GUIDANCE


@pytest.mark.parametrize(
    "payload",
    [
        "PERMISSION_DENIED: caller lacks datastore.databases.import",
        "bucket not found",
        "invalid location",
        {"code": 7, "message": "permission denied"},
    ],
)
def test_other_errors_are_generic(payload):
    error = classify_restore_error(payload)

    assert error.kind == GENERIC
    assert error.guidance is None
    assert "guidance" not in error.to_dict()


def test_structured_error_without_message_is_rendered_verbatim():
    payload = {"code": 13, "details": [{"reason": "internal"}]}

    assert error_text(payload) == '{"code": 13, "details": [{"reason": "internal"}]}'
    assert classify_restore_error(payload).message == error_text(payload)


def test_empty_error_gets_placeholder_message():
    assert classify_restore_error("").message == "Unknown restore error"

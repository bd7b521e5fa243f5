"""
Restore Errors - Classification of restore failures.

Both a failed import start and an operation that finishes with an error are
run through the same classifier so the UI can show the dedicated guidance for
a bucket/database location mismatch.
"""

import json
from dataclasses import dataclass
from typing import Any

LOCATION_MISMATCH = "location_mismatch"
GENERIC = "generic"

LOCATION_MISMATCH_GUIDANCE = (
    "The backup bucket is in a different region than your Firestore database, "
    "and Firestore only imports exports stored in a compatible location. "
    "Either copy the export to a bucket in the database's region "
    "(e.g. gsutil -m cp -r gs://SOURCE/EXPORT gs://TARGET-BUCKET/) and restore "
    "from there, or restore into a database created in the bucket's region."
)


@dataclass(frozen=True)
class RestoreError:
    kind: str
    message: str
    guidance: str | None = None

    @property
    def is_location_mismatch(self) -> bool:
        return self.kind == LOCATION_MISMATCH

    def to_dict(self) -> dict:
        data = {"kind": self.kind, "message": self.message}
        if self.guidance:
            data["guidance"] = self.guidance
        return data


def error_text(payload: Any) -> str:
    """Flattens a string or structured (gcloud ``Status``) error into text."""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    try:
        return json.dumps(payload, sort_keys=True)
    except (TypeError, ValueError):
        return str(payload)


def is_location_mismatch(payload: Any) -> bool:
    # gcloud reports no dedicated status code for this; match on the text.
    text = error_text(payload).lower()
    return "location" in text and "bucket" in text


def classify_restore_error(payload: Any) -> RestoreError:
    """
    Classifies a restore failure.

    Args:
        payload: Error message string or structured error payload

    Returns:
        RestoreError with kind "location_mismatch" (plus guidance) or "generic"
    """
    message = error_text(payload) or "Unknown restore error"
    if is_location_mismatch(payload):
        return RestoreError(
            kind=LOCATION_MISMATCH,
            message=message,
            guidance=LOCATION_MISMATCH_GUIDANCE,
        )
    return RestoreError(kind=GENERIC, message=message)

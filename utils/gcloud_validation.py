"""
Identifier validation for values interpolated into gcloud/gsutil invocations.

Every identifier that reaches a command line passes through one of these
validators first. Commands are always built as argument lists, but a value
like ``--impersonate-service-account=...`` would still be parsed as a flag,
so the accepted syntax is kept to what the CLI itself considers legal.
"""

import re

DEFAULT_DATABASE_ID = "(default)"

# Lowercase alphanumerics and hyphens; no leading/trailing hyphen.
_RESOURCE_ID_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_BUCKET_RE = re.compile(r"^[a-z0-9](?:[a-z0-9._-]{0,220}[a-z0-9])?$")
_OBJECT_PATH_RE = re.compile(r"^[A-Za-z0-9._~:/=+@-]*$")
_OPERATION_NAME_RE = re.compile(r"^[A-Za-z0-9_.()-]+(?:/[A-Za-z0-9_.()-]+)*$")

MAX_OPERATIONS_LIMIT = 100


class InvalidIdentifierError(ValueError):
    """Raised when an identifier does not match the CLI's legal syntax."""


def validate_project_id(project_id: str) -> str:
    value = (project_id or "").strip()
    if not _RESOURCE_ID_RE.match(value):
        raise InvalidIdentifierError(f"Invalid project id: {project_id!r}")
    return value


def validate_database_id(database_id: str) -> str:
    value = (database_id or "").strip()
    if value == DEFAULT_DATABASE_ID:
        return value
    if not _RESOURCE_ID_RE.match(value):
        raise InvalidIdentifierError(f"Invalid database id: {database_id!r}")
    return value


def validate_backup_path(backup_path: str) -> str:
    """
    Validates a ``gs://bucket/prefix`` export location.

    Returns:
        The stripped path.
    """
    value = (backup_path or "").strip()
    if not value.startswith("gs://"):
        raise InvalidIdentifierError("Backup path must start with gs://")

    remainder = value[len("gs://"):]
    bucket, _, object_path = remainder.partition("/")
    if not _BUCKET_RE.match(bucket):
        raise InvalidIdentifierError(f"Invalid bucket name in backup path: {bucket!r}")
    if ".." in object_path.split("/") or not _OBJECT_PATH_RE.match(object_path):
        raise InvalidIdentifierError(f"Invalid characters in backup path: {backup_path!r}")
    return value


def validate_operation_name(operation_name: str) -> str:
    value = (operation_name or "").strip()
    if not value or value.startswith("-") or not _OPERATION_NAME_RE.match(value):
        raise InvalidIdentifierError(f"Invalid operation name: {operation_name!r}")
    if ".." in value.split("/"):
        raise InvalidIdentifierError(f"Invalid operation name: {operation_name!r}")
    return value


def validate_limit(limit) -> int:
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise InvalidIdentifierError(f"Invalid limit: {limit!r}") from None
    if value < 1 or value > MAX_OPERATIONS_LIMIT:
        raise InvalidIdentifierError(
            f"Limit must be between 1 and {MAX_OPERATIONS_LIMIT}, got {value}"
        )
    return value

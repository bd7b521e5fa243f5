"""
gcloud Core - Business Logic Access to the Google Cloud CLI.

Provides a clean interface to the CLI gateway, abstracting away the
infrastructure details (binaries, bucket naming, command construction).
"""

import logging
import threading

from config import get_config

# Import from infrastructure
from utils.gcloud import (
    AuthStatus,
    BackupDescriptor,
    GatewayError,
    GcloudGateway,
    RestoreOperation,
)
from utils.gcloud_validation import DEFAULT_DATABASE_ID, InvalidIdentifierError

logger = logging.getLogger(__name__)

__all__ = [
    "AuthStatus",
    "BackupDescriptor",
    "DEFAULT_DATABASE_ID",
    "GatewayError",
    "InvalidIdentifierError",
    "RestoreOperation",
    "get_gateway",
    "set_gateway",
]

_gateway: GcloudGateway | None = None
_gateway_lock = threading.Lock()


def get_gateway() -> GcloudGateway:
    """
    Returns the process-wide gateway, built from configuration on first use.
    """
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            _gateway = GcloudGateway.from_config(get_config())
            logger.debug(
                f"gcloud gateway ready (gcloud={_gateway.gcloud_binary}, "
                f"gsutil={_gateway.gsutil_binary}, bucket suffix={_gateway.bucket_suffix})"
            )
        return _gateway


def set_gateway(gateway: GcloudGateway | None) -> None:
    """Replaces the process-wide gateway (None rebuilds it from config)."""
    global _gateway
    with _gateway_lock:
        _gateway = gateway


# --- Authentication ---


def check_tool_installed() -> bool:
    return get_gateway().check_tool_installed()


def get_auth_status() -> AuthStatus:
    return get_gateway().get_auth_status()


# --- Listings ---


def list_projects() -> list[str]:
    return get_gateway().list_projects()


def list_databases(project_id: str) -> list[str]:
    """
    Lists database ids of a project; never empty.

    Raises:
        GatewayError: kind "invalid_argument" for an illegal project id
    """
    return get_gateway().list_databases(project_id)


def list_backups(project_id: str) -> list[BackupDescriptor]:
    return get_gateway().list_backups(project_id)


def list_operations(project_id: str, database_id: str, limit: int | None = None) -> list[RestoreOperation]:
    if limit is None:
        limit = get_config().get("OPERATIONS_LIST_LIMIT", 10)
    return get_gateway().list_operations(project_id, database_id, limit)


# --- Restore ---


def start_restore(backup_path: str, project_id: str, database_id: str) -> RestoreOperation:
    """
    Starts a Firestore import.

    Raises:
        GatewayError: on any failure; start failures are never swallowed
    """
    return get_gateway().start_restore(backup_path, project_id, database_id)


def get_operation_status(operation_name: str, project_id: str, database_id: str) -> RestoreOperation:
    return get_gateway().get_operation_status(operation_name, project_id, database_id)

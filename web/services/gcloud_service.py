"""
gcloud Service - Web Layer Service for Google Cloud Resources.

Thin wrapper over core.gcloud_core returning JSON-ready payloads.
"""

from typing import Any

from core import gcloud_core
from core.restore_errors import classify_restore_error

GatewayError = gcloud_core.GatewayError


def get_auth_status() -> dict[str, Any]:
    """Get gcloud installation/authentication status."""
    return gcloud_core.get_auth_status().to_dict()


def list_projects() -> list[str]:
    return gcloud_core.list_projects()


def list_databases(project_id: str) -> list[str]:
    return gcloud_core.list_databases(project_id)


def list_backups(project_id: str) -> list[dict[str, Any]]:
    return [backup.to_dict() for backup in gcloud_core.list_backups(project_id)]


def list_operations(project_id: str, database_id: str, limit: int | None = None) -> list[dict[str, Any]]:
    return [op.to_dict() for op in gcloud_core.list_operations(project_id, database_id, limit)]


def start_restore(backup_path: str, project_id: str, database_id: str) -> dict[str, Any]:
    """
    Start a restore.

    Raises:
        GatewayError: when the import cannot be started
    """
    return gcloud_core.start_restore(backup_path, project_id, database_id).to_dict()


def get_restore_status(operation_name: str, project_id: str, database_id: str) -> dict[str, Any]:
    return gcloud_core.get_operation_status(operation_name, project_id, database_id).to_dict()


def describe_restore_error(message: str) -> dict[str, Any]:
    """Classify a restore error message for the UI (kind + guidance)."""
    return classify_restore_error(message).to_dict()

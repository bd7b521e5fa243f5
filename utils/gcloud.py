"""
Google Cloud CLI Gateway.

Thin façade over the ``gcloud`` and ``gsutil`` command-line tools. Every call
spawns one or more CLI processes and maps their text/JSON output into typed
results. The gateway owns no state; each returned structure is a fresh value.

Failure policy:
- Read-only listings degrade to empty/default results (the wizard must stay
  navigable even when a listing fails).
- Starting a restore and fetching operation status raise GatewayError, the
  caller has to react to those explicitly.
- Identifiers are validated before any command is built; invalid input raises
  GatewayError(kind="invalid_argument") for every operation.
"""

import json
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from utils.gcloud_validation import (
    DEFAULT_DATABASE_ID,
    InvalidIdentifierError,
    validate_backup_path,
    validate_database_id,
    validate_limit,
    validate_operation_name,
    validate_project_id,
)

logger = logging.getLogger(__name__)

_OPERATION_NAME_LINE_RE = re.compile(r"^\s*name:\s*(.+?)\s*$", re.MULTILINE)
_BACKUP_NAME_RE = re.compile(r"^gs://.+/(.+)/$")
_DATABASE_SEGMENT_RE = re.compile(r"/databases/(.+)$")
_EXPORT_TIMESTAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})")


class GatewayError(Exception):
    """
    Raised when a CLI invocation fails.

    Attributes:
        kind: One of "tool_unavailable", "command_failed", "malformed_output",
              "invalid_argument", "timeout".
        message: Human-readable detail, usually the tool's stderr.
    """

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class AuthStatus:
    installed: bool
    authenticated: bool
    account: str | None = None
    project: str | None = None

    def to_dict(self) -> dict:
        data = {"installed": self.installed, "authenticated": self.authenticated}
        if self.account:
            data["account"] = self.account
        if self.project:
            data["project"] = self.project
        return data


@dataclass(frozen=True)
class BackupDescriptor:
    """
    One export folder found in the project's storage bucket.

    Attributes:
        name: Folder name (last path segment).
        path: Full ``gs://bucket/folder/`` URI passed to the import command.
        size: Human-readable size, when known.
        created: ISO timestamp derived from the folder name, when it has one.
        location: Location of the bucket holding the export.
    """

    name: str
    path: str
    size: str | None = None
    created: str | None = None
    location: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "created": self.created,
            "location": self.location,
        }


@dataclass(frozen=True)
class RestoreOperation:
    """
    Snapshot of a long-running Firestore import operation.

    Never patched in place: every status refresh produces a new value.
    """

    name: str
    done: bool = False
    operation_type: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    error: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error is not None

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None

    @classmethod
    def from_api(cls, payload: dict, fallback_name: str = "") -> "RestoreOperation":
        """Builds an operation from the JSON shape gcloud prints for operations."""
        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, dict):
            metadata = {}
        return cls(
            name=payload.get("name") or fallback_name,
            done=bool(payload.get("done", False)),
            operation_type=metadata.get("operationType"),
            start_time=metadata.get("startTime"),
            end_time=metadata.get("endTime"),
            error=payload.get("error") or None,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "done": self.done,
            "operationType": self.operation_type,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "error": self.error,
        }


def _validated(validator, value):
    try:
        return validator(value)
    except InvalidIdentifierError as e:
        raise GatewayError("invalid_argument", str(e)) from e


def _parse_operation_name(output: str) -> str:
    match = _OPERATION_NAME_LINE_RE.search(output or "")
    if not match:
        return ""
    return match.group(1).strip().strip("'\"")


def _backup_name_from_path(path: str) -> str:
    match = _BACKUP_NAME_RE.match(path)
    return match.group(1) if match else path


def _created_from_backup_name(name: str) -> str | None:
    """Managed exports are named ``<ISO timestamp>_<suffix>``."""
    match = _EXPORT_TIMESTAMP_RE.match(name)
    if not match:
        return None
    try:
        return datetime.fromisoformat(match.group(1)).isoformat()
    except ValueError:
        return None


class GcloudGateway:
    """
    Issues gcloud/gsutil invocations and maps their output into typed results.
    """

    def __init__(
        self,
        gcloud_binary: str = "gcloud",
        gsutil_binary: str = "gsutil",
        bucket_suffix: str = "firebasestorage.app",
        command_timeout: float | None = None,
    ):
        self.gcloud_binary = gcloud_binary
        self.gsutil_binary = gsutil_binary
        self.bucket_suffix = bucket_suffix
        self.command_timeout = command_timeout or None

    @classmethod
    def from_config(cls, config: dict) -> "GcloudGateway":
        return cls(
            gcloud_binary=config.get("GCLOUD_BINARY", "gcloud"),
            gsutil_binary=config.get("GSUTIL_BINARY", "gsutil"),
            bucket_suffix=config.get("STORAGE_BUCKET_SUFFIX", "firebasestorage.app"),
            command_timeout=config.get("GCLOUD_COMMAND_TIMEOUT") or None,
        )

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        """Runs one CLI command; raises GatewayError on any failure."""
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
            )
        except FileNotFoundError as e:
            raise GatewayError("tool_unavailable", f"{cmd[0]} is not installed") from e
        except subprocess.TimeoutExpired as e:
            raise GatewayError(
                "timeout", f"{cmd[0]} did not finish within {self.command_timeout}s"
            ) from e
        except OSError as e:
            raise GatewayError("command_failed", f"{cmd[0]} could not be started: {e}") from e

        if result.returncode != 0:
            details = (result.stderr or result.stdout or "").strip()
            raise GatewayError(
                "command_failed",
                details or f"{cmd[0]} exited with code {result.returncode}",
            )
        return result

    def bucket_for_project(self, project_id: str) -> str:
        return f"{project_id}.{self.bucket_suffix}"

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def check_tool_installed(self) -> bool:
        """Returns True when gcloud is on PATH and answers --version."""
        if shutil.which(self.gcloud_binary) is None:
            return False
        try:
            self._run([self.gcloud_binary, "--version"])
        except GatewayError as e:
            logger.warning(f"gcloud --version failed: {e}")
            return False
        return True

    def get_auth_status(self) -> AuthStatus:
        """
        Reports whether gcloud is installed and has an active account.

        Any failure is reported as "not authenticated" rather than raised.
        """
        if not self.check_tool_installed():
            return AuthStatus(installed=False, authenticated=False)

        try:
            account_output = self._run(
                [
                    self.gcloud_binary,
                    "auth",
                    "list",
                    "--filter=status:ACTIVE",
                    "--format=value(account)",
                ]
            ).stdout
            project_output = self._run(
                [self.gcloud_binary, "config", "get-value", "project"]
            ).stdout
        except GatewayError as e:
            logger.warning(f"Could not read gcloud auth status: {e}")
            return AuthStatus(installed=True, authenticated=False)

        accounts = [line.strip() for line in account_output.splitlines() if line.strip()]
        project = project_output.strip()
        return AuthStatus(
            installed=True,
            authenticated=bool(accounts),
            account=accounts[0] if accounts else None,
            project=project or None,
        )

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_projects(self) -> list[str]:
        try:
            output = self._run(
                [self.gcloud_binary, "projects", "list", "--format=value(projectId)"]
            ).stdout
        except GatewayError as e:
            logger.warning(f"Listing projects failed: {e}")
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def list_databases(self, project_id: str) -> list[str]:
        """
        Lists Firestore database ids of a project.

        Never returns an empty list: "(default)" is returned when nothing
        could be listed.
        """
        project_id = _validated(validate_project_id, project_id)
        try:
            output = self._run(
                [
                    self.gcloud_binary,
                    "firestore",
                    "databases",
                    "list",
                    f"--project={project_id}",
                    "--format=value(name)",
                ]
            ).stdout
        except GatewayError as e:
            logger.warning(f"Listing databases for {project_id} failed: {e}")
            return [DEFAULT_DATABASE_ID]

        databases = []
        for line in output.splitlines():
            line = line.strip()
            if not line:
                continue
            match = _DATABASE_SEGMENT_RE.search(line)
            database_id = match.group(1) if match else DEFAULT_DATABASE_ID
            if database_id not in databases:
                databases.append(database_id)
        return databases or [DEFAULT_DATABASE_ID]

    def list_backups(self, project_id: str) -> list[BackupDescriptor]:
        """Lists top-level export folders in ``gs://<project>.<suffix>/``."""
        project_id = _validated(validate_project_id, project_id)
        bucket = self.bucket_for_project(project_id)
        try:
            output = self._run([self.gsutil_binary, "ls", f"gs://{bucket}/"]).stdout
        except GatewayError as e:
            logger.warning(f"Listing backups in gs://{bucket}/ failed: {e}")
            return []

        paths = [
            line.strip()
            for line in output.splitlines()
            if line.strip().startswith("gs://") and line.strip().endswith("/")
        ]
        if not paths:
            return []

        location = self._bucket_location(bucket)
        backups = []
        for path in paths:
            name = _backup_name_from_path(path)
            backups.append(
                BackupDescriptor(
                    name=name,
                    path=path,
                    created=_created_from_backup_name(name),
                    location=location,
                )
            )
        return backups

    def _bucket_location(self, bucket: str) -> str | None:
        """Best-effort lookup of a bucket's location (e.g. "US-CENTRAL1")."""
        try:
            output = self._run(
                [
                    self.gcloud_binary,
                    "storage",
                    "buckets",
                    "describe",
                    f"gs://{bucket}",
                    "--format=value(location)",
                ]
            ).stdout
        except GatewayError as e:
            logger.debug(f"Bucket location lookup for {bucket} failed: {e}")
            return None
        return output.strip() or None

    def list_operations(
        self, project_id: str, database_id: str, limit: int = 10
    ) -> list[RestoreOperation]:
        """Lists recent long-running operations of a database, newest first."""
        project_id = _validated(validate_project_id, project_id)
        database_id = _validated(validate_database_id, database_id)
        limit = _validated(validate_limit, limit)
        try:
            output = self._run(
                [
                    self.gcloud_binary,
                    "firestore",
                    "operations",
                    "list",
                    f"--database={database_id}",
                    f"--project={project_id}",
                    f"--limit={limit}",
                    "--format=json",
                ]
            ).stdout
            payload = json.loads(output or "[]")
        except (GatewayError, json.JSONDecodeError) as e:
            logger.warning(f"Listing operations for {project_id}/{database_id} failed: {e}")
            return []

        if not isinstance(payload, list):
            return []
        return [RestoreOperation.from_api(op) for op in payload if isinstance(op, dict)]

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def start_restore(
        self, backup_path: str, project_id: str, database_id: str
    ) -> RestoreOperation:
        """
        Starts an asynchronous Firestore import.

        Raises:
            GatewayError: when the import cannot be started or its operation
                name cannot be read from the output.
        """
        backup_path = _validated(validate_backup_path, backup_path)
        project_id = _validated(validate_project_id, project_id)
        database_id = _validated(validate_database_id, database_id)

        result = self._run(
            [
                self.gcloud_binary,
                "firestore",
                "import",
                backup_path,
                f"--database={database_id}",
                f"--project={project_id}",
                "--async",
            ]
        )

        operation_name = _parse_operation_name(result.stdout) or _parse_operation_name(
            result.stderr
        )
        if not operation_name:
            raise GatewayError(
                "malformed_output",
                "Restore was submitted but gcloud did not report an operation name.",
            )

        logger.info(
            f"Restore started: {backup_path} -> {project_id}/{database_id} ({operation_name})"
        )
        return RestoreOperation(name=operation_name, done=False, operation_type="IMPORT")

    def get_operation_status(
        self, operation_name: str, project_id: str, database_id: str
    ) -> RestoreOperation:
        """
        Describes a long-running operation.

        Raises:
            GatewayError: when the describe call fails or prints invalid JSON.
        """
        operation_name = _validated(validate_operation_name, operation_name)
        project_id = _validated(validate_project_id, project_id)
        database_id = _validated(validate_database_id, database_id)

        result = self._run(
            [
                self.gcloud_binary,
                "firestore",
                "operations",
                "describe",
                operation_name,
                f"--database={database_id}",
                f"--project={project_id}",
                "--format=json",
            ]
        )
        try:
            payload = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise GatewayError(
                "malformed_output", f"Operation status is not valid JSON: {e}"
            ) from e
        if not isinstance(payload, dict):
            raise GatewayError("malformed_output", "Operation status is not a JSON object")

        return RestoreOperation.from_api(payload, fallback_name=operation_name)

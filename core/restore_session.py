"""
Restore Session - State Machine for the Restore Wizard.

A wizard session is an immutable WizardSession value. Every user action and
every gateway result is applied through one of the transition functions below,
each of which returns a new session (or the same one when the transition is
not allowed in the current stage). Nothing here performs I/O.

Stages (linear):
    Authentication -> DatabaseSelection -> BackupSelection
        -> ReviewConfirm -> RestoreProgress

- BackupSelection and ReviewConfirm may step back one stage.
- RestoreProgress may reset to Authentication once the operation is terminal.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum

from core.restore_errors import RestoreError, classify_restore_error
from utils.gcloud import AuthStatus, BackupDescriptor, RestoreOperation
from utils.gcloud_validation import (
    DEFAULT_DATABASE_ID,
    InvalidIdentifierError,
    validate_project_id,
)


class WizardStage(IntEnum):
    AUTHENTICATION = 1
    DATABASE_SELECTION = 2
    BACKUP_SELECTION = 3
    REVIEW_CONFIRM = 4
    RESTORE_PROGRESS = 5


@dataclass(frozen=True)
class RestoreSelection:
    """
    What the user picked: target project/database and the backup source.

    The backup comes either from the listed catalog (backup_path) or from a
    typed URI (manual_path with use_manual_path set), never both.
    """

    project: str = ""
    database: str = ""
    backup_path: str = ""
    manual_path: str = ""
    use_manual_path: bool = False

    @property
    def resolved_backup_path(self) -> str:
        if self.use_manual_path:
            return self.manual_path.strip()
        return self.backup_path

    @property
    def is_complete(self) -> bool:
        return bool(self.project and self.database and self.resolved_backup_path)


@dataclass(frozen=True)
class WizardSession:
    stage: WizardStage = WizardStage.AUTHENTICATION
    auth: AuthStatus | None = None
    projects: tuple[str, ...] = ()
    databases: tuple[str, ...] = ()
    backups: tuple[BackupDescriptor, ...] = ()
    selection: RestoreSelection = field(default_factory=RestoreSelection)
    # Handle the active operation was started with; poll results are
    # matched against it, not against the name the tool reports back.
    operation_handle: str = ""
    operation: RestoreOperation | None = None
    start_error: RestoreError | None = None
    poll_failures: int = 0
    poll_error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.auth is not None and self.auth.authenticated

    @property
    def operation_error(self) -> RestoreError | None:
        if self.operation is None or self.operation.error is None:
            return None
        return classify_restore_error(self.operation.error)

    @property
    def restore_terminal(self) -> bool:
        return self.operation is not None and self.operation.is_terminal

    @property
    def restore_succeeded(self) -> bool:
        return self.operation is not None and self.operation.succeeded


def initial_session() -> WizardSession:
    return WizardSession()


# --- Authentication ---


def apply_auth_status(session: WizardSession, auth: AuthStatus) -> WizardSession:
    """
    Stores the auth check result. The gcloud default project, when set,
    pre-populates the project choice unless it is not a usable project id
    (e.g. a domain-scoped "example.com:proj"). The stage does not change.
    """
    if session.stage != WizardStage.AUTHENTICATION or session.is_authenticated:
        return session

    selection = session.selection
    if auth.project and not selection.project and _is_usable_project(auth.project):
        selection = replace(selection, project=auth.project)
    return replace(session, auth=auth, selection=selection)


def _is_usable_project(project_id: str) -> bool:
    try:
        validate_project_id(project_id)
    except InvalidIdentifierError:
        return False
    return True


def apply_projects(session: WizardSession, projects) -> WizardSession:
    return replace(session, projects=tuple(projects))


# --- Navigation ---


def can_advance(session: WizardSession) -> bool:
    selection = session.selection
    if session.stage == WizardStage.AUTHENTICATION:
        return session.is_authenticated
    if session.stage == WizardStage.DATABASE_SELECTION:
        return bool(selection.project and selection.database)
    if session.stage == WizardStage.BACKUP_SELECTION:
        return selection.is_complete
    # ReviewConfirm only moves on through confirmation.
    return False


def advance(session: WizardSession) -> WizardSession:
    if not can_advance(session):
        return session
    return replace(session, stage=WizardStage(session.stage + 1), start_error=None)


def can_go_back(session: WizardSession) -> bool:
    return session.stage in (WizardStage.BACKUP_SELECTION, WizardStage.REVIEW_CONFIRM)


def go_back(session: WizardSession) -> WizardSession:
    if not can_go_back(session):
        return session
    return replace(session, stage=WizardStage(session.stage - 1), start_error=None)


def can_reset(session: WizardSession) -> bool:
    return session.stage == WizardStage.RESTORE_PROGRESS and session.restore_terminal


def reset(session: WizardSession) -> WizardSession:
    """
    Returns to Authentication with selection and operation cleared. The auth
    status and project list are kept, both are fetched once per session.
    """
    if not can_reset(session):
        return session
    return WizardSession(auth=session.auth, projects=session.projects)


# --- Database selection ---


def select_project(session: WizardSession, project: str) -> WizardSession:
    """Chooses the target project; databases and backups must be reloaded."""
    project = (project or "").strip()
    if session.stage not in (WizardStage.AUTHENTICATION, WizardStage.DATABASE_SELECTION):
        return session
    if not project or project == session.selection.project:
        return session
    return replace(
        session,
        selection=RestoreSelection(project=project),
        databases=(),
        backups=(),
    )


def select_database(session: WizardSession, database: str) -> WizardSession:
    database = (database or "").strip()
    if session.stage != WizardStage.DATABASE_SELECTION or not database:
        return session
    return replace(session, selection=replace(session.selection, database=database))


def apply_databases(session: WizardSession, project: str, databases) -> WizardSession:
    """Applies a database listing issued for ``project``; stale listings are dropped."""
    if session.selection.project != project:
        return session
    databases = tuple(databases) or (DEFAULT_DATABASE_ID,)
    selection = session.selection
    if not selection.database:
        selection = replace(selection, database=databases[0])
    return replace(session, databases=databases, selection=selection)


def apply_backups(session: WizardSession, project: str, backups) -> WizardSession:
    """Applies a backup listing issued for ``project``; stale listings are dropped."""
    if session.selection.project != project:
        return session
    backups = tuple(backups)
    selection = session.selection
    if selection.backup_path and selection.backup_path not in {b.path for b in backups}:
        selection = replace(selection, backup_path="")
    return replace(session, backups=backups, selection=selection)


# --- Backup selection ---


def select_backup(session: WizardSession, backup_path: str) -> WizardSession:
    """Chooses a listed backup; leaves manual path mode."""
    if session.stage != WizardStage.BACKUP_SELECTION:
        return session
    if backup_path not in {b.path for b in session.backups}:
        return session
    selection = replace(
        session.selection, backup_path=backup_path, manual_path="", use_manual_path=False
    )
    return replace(session, selection=selection)


def set_manual_path(session: WizardSession, enabled: bool, path: str = "") -> WizardSession:
    """Switches manual path mode on (clearing any catalog choice) or off."""
    if session.stage != WizardStage.BACKUP_SELECTION:
        return session
    if enabled:
        selection = replace(
            session.selection,
            backup_path="",
            manual_path=(path or "").strip(),
            use_manual_path=True,
        )
    else:
        selection = replace(session.selection, manual_path="", use_manual_path=False)
    return replace(session, selection=selection)


# --- Restore ---


def restore_start_failed(session: WizardSession, error_payload) -> WizardSession:
    """Records a failed start; the session stays in ReviewConfirm."""
    if session.stage != WizardStage.REVIEW_CONFIRM:
        return session
    return replace(session, start_error=classify_restore_error(error_payload))


def restore_started(session: WizardSession, operation: RestoreOperation) -> WizardSession:
    if session.stage != WizardStage.REVIEW_CONFIRM:
        return session
    return replace(
        session,
        stage=WizardStage.RESTORE_PROGRESS,
        operation_handle=operation.name,
        operation=operation,
        start_error=None,
        poll_failures=0,
        poll_error=None,
    )


def is_current_operation(session: WizardSession, handle: str) -> bool:
    return (
        session.stage == WizardStage.RESTORE_PROGRESS
        and bool(handle)
        and session.operation_handle == handle
    )


def apply_operation_status(
    session: WizardSession, handle: str, operation: RestoreOperation
) -> WizardSession:
    """
    Replaces the stored operation with a fresh status fetched for ``handle``.
    Results for an operation that is no longer active are discarded.
    """
    if not is_current_operation(session, handle):
        return session
    return replace(session, operation=operation, poll_failures=0, poll_error=None)


def record_poll_failure(
    session: WizardSession, handle: str, message: str, max_failures: int
) -> WizardSession:
    """
    Counts a failed status fetch. The previous status is kept; once
    ``max_failures`` consecutive fetches failed, poll_error is set.
    """
    if not is_current_operation(session, handle):
        return session
    failures = session.poll_failures + 1
    poll_error = session.poll_error
    if failures >= max_failures:
        poll_error = (
            f"Restore status could not be refreshed {failures} times in a row: {message}"
        )
    return replace(session, poll_failures=failures, poll_error=poll_error)


def resume_polling(session: WizardSession, handle: str) -> WizardSession:
    """Clears the failure count and poll error before a manual status check."""
    if not is_current_operation(session, handle):
        return session
    return replace(session, poll_failures=0, poll_error=None)


def should_poll(session: WizardSession, handle: str) -> bool:
    return (
        is_current_operation(session, handle)
        and not session.restore_terminal
        and session.poll_error is None
    )


# --- Serialization ---


def session_snapshot(session: WizardSession) -> dict:
    """JSON-ready view of a session for the wizard UI."""
    selection = session.selection
    return {
        "stage": session.stage.name.lower(),
        "step": int(session.stage),
        "canAdvance": can_advance(session),
        "canGoBack": can_go_back(session),
        "canReset": can_reset(session),
        "auth": session.auth.to_dict() if session.auth else None,
        "projects": list(session.projects),
        "databases": list(session.databases),
        "backups": [b.to_dict() for b in session.backups],
        "selection": {
            "projectId": selection.project,
            "databaseId": selection.database,
            "backupPath": selection.backup_path,
            "manualPath": selection.manual_path,
            "useManualPath": selection.use_manual_path,
            "resolvedBackupPath": selection.resolved_backup_path,
        },
        "operation": session.operation.to_dict() if session.operation else None,
        "restoreTerminal": session.restore_terminal,
        "restoreSucceeded": session.restore_succeeded,
        "startError": session.start_error.to_dict() if session.start_error else None,
        "operationError": (
            session.operation_error.to_dict() if session.operation_error else None
        ),
        "pollError": session.poll_error,
    }

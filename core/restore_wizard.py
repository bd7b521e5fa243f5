"""
Restore Wizard - Orchestration of one wizard session.

Drives the restore_session state machine: runs the gateway calls each stage
needs, applies their results through the session transitions, and owns the
status poller of the in-flight restore.

Concurrency:
- The session value is swapped under a lock; gateway calls run outside it.
- Status fetches (poller ticks and manual checks) are serialized per wizard.
- Databases and backups of a newly selected project are listed concurrently.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from core import restore_session as rs
from core.restore_errors import RestoreError
from core.restore_session import WizardSession, WizardStage
from core.status_poller import DEFAULT_POLL_INTERVAL_SECONDS, StatusPoller
from utils.gcloud import GatewayError, GcloudGateway
from utils.gcloud_validation import (
    DEFAULT_DATABASE_ID,
    validate_database_id,
    validate_project_id,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_POLL_FAILURES = 20


class RestoreWizard:
    def __init__(
        self,
        gateway: GcloudGateway,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_poll_failures: int = DEFAULT_MAX_POLL_FAILURES,
    ):
        self._gateway = gateway
        self._poll_interval = poll_interval
        self._max_poll_failures = max(1, int(max_poll_failures))

        self._session = rs.initial_session()
        self._lock = threading.RLock()
        self._status_lock = threading.Lock()
        self._confirm_lock = threading.Lock()
        self._poller: StatusPoller | None = None
        self._auth_checked = False

    @classmethod
    def from_config(cls, gateway: GcloudGateway, config: dict) -> "RestoreWizard":
        return cls(
            gateway,
            poll_interval=config.get("POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS),
            max_poll_failures=config.get(
                "POLL_MAX_CONSECUTIVE_FAILURES", DEFAULT_MAX_POLL_FAILURES
            ),
        )

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def session(self) -> WizardSession:
        with self._lock:
            return self._session

    @property
    def is_polling(self) -> bool:
        with self._lock:
            return self._poller is not None and self._poller.is_running

    def _transition(self, transition, *args) -> tuple[WizardSession, WizardSession]:
        """Applies one transition; returns (before, after)."""
        with self._lock:
            before = self._session
            self._session = transition(before, *args)
            return before, self._session

    def _update(self, transition, *args) -> WizardSession:
        return self._transition(transition, *args)[1]

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def ensure_started(self) -> WizardSession:
        """Runs the initial auth check the first time the session is used."""
        if not self._auth_checked:
            return self.check_auth()
        return self.session

    def check_auth(self) -> WizardSession:
        """
        Checks gcloud installation and login. Only meaningful while the
        session is in Authentication and not yet authenticated; the user
        re-triggers it after fixing their gcloud setup.
        """
        session = self.session
        if session.stage != WizardStage.AUTHENTICATION or session.is_authenticated:
            return session

        auth = self._gateway.get_auth_status()
        self._auth_checked = True
        session = self._update(rs.apply_auth_status, auth)
        logger.info(
            f"gcloud auth check: installed={auth.installed} authenticated={auth.authenticated}"
        )

        if session.is_authenticated and not session.projects:
            session = self._update(rs.apply_projects, self._gateway.list_projects())
        return session

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self) -> WizardSession:
        before, after = self._transition(rs.advance)
        entered_database_selection = (
            before.stage == WizardStage.AUTHENTICATION
            and after.stage == WizardStage.DATABASE_SELECTION
        )
        if entered_database_selection and after.selection.project and not after.databases:
            self._load_project_resources(after.selection.project)
        return self.session

    def go_back(self) -> WizardSession:
        return self._update(rs.go_back)

    def reset(self) -> WizardSession:
        before, after = self._transition(rs.reset)
        if after is not before:
            self._cancel_poller()
            logger.info("Restore wizard reset")
        return after

    def shutdown(self):
        self._cancel_poller()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_project(self, project_id: str) -> WizardSession:
        """
        Raises:
            InvalidIdentifierError: when project_id is not a legal project id.
        """
        project_id = validate_project_id(project_id)
        before, after = self._transition(rs.select_project, project_id)
        if after is not before and after.stage == WizardStage.DATABASE_SELECTION:
            self._load_project_resources(project_id)
        return self.session

    def select_database(self, database_id: str) -> WizardSession:
        database_id = validate_database_id(database_id)
        return self._update(rs.select_database, database_id)

    def select_backup(self, backup_path: str) -> WizardSession:
        return self._update(rs.select_backup, backup_path)

    def set_manual_path(self, enabled: bool, path: str = "") -> WizardSession:
        return self._update(rs.set_manual_path, enabled, path)

    def _load_project_resources(self, project_id: str):
        """
        Lists databases and backups of a project concurrently. A failed
        listing never blocks the wizard: databases fall back to the default
        database and backups to an empty catalog (manual path still works).
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="wizard-listing") as pool:
            databases_future = pool.submit(self._gateway.list_databases, project_id)
            backups_future = pool.submit(self._gateway.list_backups, project_id)
            try:
                databases = databases_future.result()
            except GatewayError as e:
                logger.warning(f"Listing databases for {project_id} failed: {e.message}")
                databases = [DEFAULT_DATABASE_ID]
            try:
                backups = backups_future.result()
            except GatewayError as e:
                logger.warning(f"Listing backups for {project_id} failed: {e.message}")
                backups = []

        self._update(rs.apply_databases, project_id, databases)
        self._update(rs.apply_backups, project_id, backups)
        logger.debug(
            f"Loaded {len(databases)} database(s) and {len(backups)} backup(s) for {project_id}"
        )

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def confirm(self) -> WizardSession:
        """
        Starts the restore for the current selection.

        On failure the session stays in ReviewConfirm with a classified
        start_error. On success it moves to RestoreProgress, checks the status
        once right away and hands over to the poller.
        """
        return self.start_restore()[0]

    def start_restore(self) -> tuple[WizardSession, RestoreError | None]:
        """
        Same as confirm(), but also returns the start error raised by this
        call. The error is None when the start succeeded or was not attempted
        (wrong stage, incomplete selection, or another confirm in flight).
        """
        if not self._confirm_lock.acquire(blocking=False):
            logger.warning("Restore confirmation already in progress")
            return self.session, None

        try:
            session = self.session
            if session.stage != WizardStage.REVIEW_CONFIRM or not session.selection.is_complete:
                return session, None

            selection = session.selection
            try:
                operation = self._gateway.start_restore(
                    selection.resolved_backup_path, selection.project, selection.database
                )
            except GatewayError as e:
                logger.error(f"Restore start failed ({e.kind}): {e.message}")
                session = self._update(rs.restore_start_failed, e.message)
                return session, session.start_error

            session = self._update(rs.restore_started, operation)
        finally:
            self._confirm_lock.release()

        handle = session.operation_handle
        if self.refresh_status(handle):
            self._start_poller(handle)
        return self.session, None

    def check_status(self) -> WizardSession:
        """Manual status check; resumes polling if it had given up."""
        session = self.session
        handle = session.operation_handle
        if not rs.is_current_operation(session, handle):
            return session

        self._update(rs.resume_polling, handle)
        if self.refresh_status(handle):
            self._start_poller(handle)
        return self.session

    def refresh_status(self, handle: str) -> bool:
        """
        Fetches the status of ``handle`` and applies it.

        Returns:
            True while the operation should keep being polled
        """
        with self._status_lock:
            session = self.session
            if not rs.is_current_operation(session, handle):
                return False

            selection = session.selection
            try:
                operation = self._gateway.get_operation_status(
                    handle, selection.project, selection.database
                )
            except GatewayError as e:
                logger.warning(f"Restore status check for {handle} failed: {e.message}")
                session = self._update(
                    rs.record_poll_failure, handle, e.message, self._max_poll_failures
                )
                if session.poll_error:
                    logger.error(session.poll_error)
            else:
                session = self._update(rs.apply_operation_status, handle, operation)
                if operation.is_terminal:
                    if operation.error is not None:
                        logger.error(f"Restore {handle} failed: {operation.error}")
                    else:
                        logger.info(f"Restore {handle} completed")

            return rs.should_poll(session, handle)

    # ------------------------------------------------------------------
    # Poller
    # ------------------------------------------------------------------

    def _start_poller(self, handle: str):
        with self._lock:
            if not rs.should_poll(self._session, handle):
                return
            if self._poller is not None:
                if self._poller.handle == handle and self._poller.is_running:
                    return
                self._poller.cancel()
            self._poller = StatusPoller(handle, self.refresh_status, self._poll_interval)
            self._poller.start()

    def _cancel_poller(self):
        with self._lock:
            poller, self._poller = self._poller, None
        if poller is not None:
            poller.cancel()

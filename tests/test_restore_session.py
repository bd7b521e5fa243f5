"""
Tests for the restore wizard state machine (pure transitions, no I/O).
"""

from dataclasses import replace

import pytest

from core import restore_session as rs
from core.restore_session import RestoreSelection, WizardSession, WizardStage
from utils.gcloud import AuthStatus, BackupDescriptor, RestoreOperation

AUTHENTICATED = AuthStatus(
    installed=True, authenticated=True, account="a@x.com", project="proj1"
)
BACKUPS = (
    BackupDescriptor(name="export-a", path="gs://proj1.firebasestorage.app/export-a/"),
    BackupDescriptor(name="export-b", path="gs://proj1.firebasestorage.app/export-b/"),
)


def _at_stage(stage, **selection):
    defaults = {"project": "proj1", "database": "(default)"}
    defaults.update(selection)
    return WizardSession(
        stage=stage,
        auth=AUTHENTICATED,
        projects=("proj1", "proj2"),
        databases=("(default)",),
        backups=BACKUPS,
        selection=RestoreSelection(**defaults),
    )


def _in_progress(operation=None):
    operation = operation or RestoreOperation(name="op-1")
    session = _at_stage(
        WizardStage.REVIEW_CONFIRM, backup_path=BACKUPS[0].path
    )
    return rs.restore_started(session, operation)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthentication:
    def test_auth_prepopulates_project_and_stays(self):
        session = rs.apply_auth_status(rs.initial_session(), AUTHENTICATED)

        assert session.selection.project == "proj1"
        assert session.stage == WizardStage.AUTHENTICATION
        assert session.is_authenticated

    def test_domain_scoped_default_project_is_not_prepopulated(self):
        auth = AuthStatus(
            installed=True, authenticated=True, account="a@x.com", project="example.com:proj"
        )

        session = rs.apply_auth_status(rs.initial_session(), auth)

        assert session.selection.project == ""
        assert session.auth == auth
        assert rs.can_advance(session)

    def test_existing_project_choice_is_kept(self):
        session = rs.select_project(rs.initial_session(), "proj2")
        session = rs.apply_auth_status(session, AUTHENTICATED)

        assert session.selection.project == "proj2"

    @pytest.mark.parametrize(
        "auth",
        [
            AuthStatus(installed=False, authenticated=False),
            AuthStatus(installed=True, authenticated=False),
        ],
    )
    def test_cannot_advance_without_login(self, auth):
        session = rs.apply_auth_status(rs.initial_session(), auth)

        assert not rs.can_advance(session)
        assert rs.advance(session) is session

    def test_auth_status_is_fixed_once_authenticated(self):
        session = rs.apply_auth_status(rs.initial_session(), AUTHENTICATED)
        other = AuthStatus(installed=True, authenticated=True, account="b@y.com")

        assert rs.apply_auth_status(session, other) is session

    def test_advance_after_login(self):
        session = rs.apply_auth_status(rs.initial_session(), AUTHENTICATED)

        assert rs.advance(session).stage == WizardStage.DATABASE_SELECTION


# ---------------------------------------------------------------------------
# Database selection
# ---------------------------------------------------------------------------


class TestDatabaseSelection:
    def test_requires_project_and_database(self):
        session = _at_stage(WizardStage.DATABASE_SELECTION, database="")
        assert rs.advance(session) is session

        session = _at_stage(WizardStage.DATABASE_SELECTION, project="", database="(default)")
        assert rs.advance(session) is session

        session = _at_stage(WizardStage.DATABASE_SELECTION)
        assert rs.advance(session).stage == WizardStage.BACKUP_SELECTION

    def test_select_project_clears_dependent_data(self):
        session = _at_stage(WizardStage.DATABASE_SELECTION, backup_path=BACKUPS[0].path)

        session = rs.select_project(session, "proj2")

        assert session.selection == RestoreSelection(project="proj2")
        assert session.databases == ()
        assert session.backups == ()

    def test_first_database_is_default_choice(self):
        session = rs.select_project(_at_stage(WizardStage.DATABASE_SELECTION), "proj2")

        session = rs.apply_databases(session, "proj2", ["staging", "(default)"])

        assert session.databases == ("staging", "(default)")
        assert session.selection.database == "staging"

    def test_user_database_choice_survives_listing(self):
        session = rs.select_project(_at_stage(WizardStage.DATABASE_SELECTION), "proj2")
        session = rs.select_database(session, "prod")

        session = rs.apply_databases(session, "proj2", ["staging", "prod"])

        assert session.selection.database == "prod"

    def test_stale_listings_are_dropped(self):
        session = rs.select_project(_at_stage(WizardStage.DATABASE_SELECTION), "proj2")

        assert rs.apply_databases(session, "proj1", ["old"]) is session
        assert rs.apply_backups(session, "proj1", BACKUPS) is session

    def test_empty_database_listing_falls_back_to_default(self):
        session = rs.select_project(_at_stage(WizardStage.DATABASE_SELECTION), "proj2")

        session = rs.apply_databases(session, "proj2", [])

        assert session.selection.database == "(default)"

    def test_project_cannot_change_after_database_step(self):
        session = _at_stage(WizardStage.BACKUP_SELECTION)

        assert rs.select_project(session, "proj2") is session


# ---------------------------------------------------------------------------
# Backup selection
# ---------------------------------------------------------------------------


class TestBackupSelection:
    def test_requires_resolved_path(self):
        session = _at_stage(WizardStage.BACKUP_SELECTION)
        assert rs.advance(session) is session

        session = rs.select_backup(session, BACKUPS[1].path)
        session = rs.advance(session)

        assert session.stage == WizardStage.REVIEW_CONFIRM
        assert session.selection.resolved_backup_path == BACKUPS[1].path

    def test_unknown_catalog_path_is_ignored(self):
        session = _at_stage(WizardStage.BACKUP_SELECTION)

        assert rs.select_backup(session, "gs://elsewhere/export/") is session

    def test_manual_path_replaces_catalog_choice(self):
        session = rs.select_backup(_at_stage(WizardStage.BACKUP_SELECTION), BACKUPS[0].path)

        session = rs.set_manual_path(session, True, " gs://other-bucket/export/ ")

        assert session.selection.backup_path == ""
        assert session.selection.use_manual_path is True
        assert session.selection.resolved_backup_path == "gs://other-bucket/export/"

    def test_catalog_choice_leaves_manual_mode(self):
        session = rs.set_manual_path(
            _at_stage(WizardStage.BACKUP_SELECTION), True, "gs://other-bucket/export/"
        )

        session = rs.select_backup(session, BACKUPS[0].path)

        assert session.selection.use_manual_path is False
        assert session.selection.manual_path == ""
        assert session.selection.resolved_backup_path == BACKUPS[0].path

    def test_empty_manual_path_blocks_advance(self):
        session = rs.set_manual_path(_at_stage(WizardStage.BACKUP_SELECTION), True, "   ")

        assert not rs.can_advance(session)

    def test_back_navigation(self):
        session = _at_stage(WizardStage.REVIEW_CONFIRM, backup_path=BACKUPS[0].path)

        session = rs.go_back(session)
        assert session.stage == WizardStage.BACKUP_SELECTION
        session = rs.go_back(session)
        assert session.stage == WizardStage.DATABASE_SELECTION
        assert rs.go_back(session) is session


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------


class TestRestore:
    def test_start_failure_stays_on_review(self):
        session = _at_stage(WizardStage.REVIEW_CONFIRM, backup_path=BACKUPS[0].path)

        session = rs.restore_start_failed(
            session, "The location of bucket gs://b must match the database location"
        )

        assert session.stage == WizardStage.REVIEW_CONFIRM
        assert session.start_error.is_location_mismatch
        assert session.operation is None

    def test_started_moves_to_progress(self):
        session = _in_progress()

        assert session.stage == WizardStage.RESTORE_PROGRESS
        assert session.operation_handle == "op-1"
        assert session.start_error is None
        assert rs.should_poll(session, "op-1")

    def test_status_replaces_operation(self):
        session = _in_progress(RestoreOperation(name="op-1", operation_type="IMPORT"))
        fresh = RestoreOperation(name="op-1", done=True, start_time="t0")

        session = rs.apply_operation_status(session, "op-1", fresh)

        assert session.operation is fresh
        assert session.operation.operation_type is None
        assert session.restore_succeeded
        assert not rs.should_poll(session, "op-1")

    def test_status_for_other_handle_is_discarded(self):
        session = _in_progress()

        assert (
            rs.apply_operation_status(session, "op-old", RestoreOperation(name="op-old", done=True))
            is session
        )

    def test_reported_error_is_terminal_even_if_not_done(self):
        session = rs.apply_operation_status(
            _in_progress(), "op-1", RestoreOperation(name="op-1", error={"message": "bucket location"})
        )

        assert session.restore_terminal
        assert not session.restore_succeeded
        assert session.operation_error.is_location_mismatch

    def test_poll_failures_keep_status_until_threshold(self):
        session = _in_progress()
        previous = session.operation

        session = rs.record_poll_failure(session, "op-1", "timeout", max_failures=3)
        session = rs.record_poll_failure(session, "op-1", "timeout", max_failures=3)
        assert session.operation is previous
        assert session.poll_error is None
        assert rs.should_poll(session, "op-1")

        session = rs.record_poll_failure(session, "op-1", "timeout", max_failures=3)
        assert session.poll_error is not None
        assert not rs.should_poll(session, "op-1")

        session = rs.resume_polling(session, "op-1")
        assert session.poll_failures == 0
        assert rs.should_poll(session, "op-1")

    def test_success_resets_failure_count(self):
        session = rs.record_poll_failure(_in_progress(), "op-1", "timeout", max_failures=5)

        session = rs.apply_operation_status(session, "op-1", RestoreOperation(name="op-1"))

        assert session.poll_failures == 0

    def test_reset_only_after_terminal_operation(self):
        session = _in_progress()
        assert rs.reset(session) is session

        session = rs.apply_operation_status(session, "op-1", RestoreOperation(name="op-1", done=True))
        session = rs.reset(session)

        assert session.stage == WizardStage.AUTHENTICATION
        assert session.operation is None
        assert session.operation_handle == ""
        assert session.selection == RestoreSelection()
        assert session.auth == AUTHENTICATED
        assert session.projects == ("proj1", "proj2")


def test_snapshot_is_json_ready():
    session = replace(_in_progress(), poll_error=None)

    snapshot = rs.session_snapshot(session)

    assert snapshot["stage"] == "restore_progress"
    assert snapshot["step"] == 5
    assert snapshot["selection"]["resolvedBackupPath"] == BACKUPS[0].path
    assert snapshot["operation"]["name"] == "op-1"
    assert snapshot["auth"] == {
        "installed": True,
        "authenticated": True,
        "account": "a@x.com",
        "project": "proj1",
    }
    assert snapshot["canReset"] is False

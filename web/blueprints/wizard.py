"""
Restore Wizard Blueprint.

Session-scoped endpoints that drive the restore wizard. Every endpoint
answers with the current wizard snapshot under "session":
- GET /api/wizard - Current state (runs the initial auth check)
- POST /api/wizard/auth/check - Re-check gcloud login
- POST /api/wizard/project - Choose project
- POST /api/wizard/database - Choose database
- POST /api/wizard/backup - Choose a listed backup
- POST /api/wizard/manual-path - Toggle/enter a manual gs:// path
- POST /api/wizard/advance - Next step
- POST /api/wizard/back - Previous step
- POST /api/wizard/confirm - Start the restore
- POST /api/wizard/status - Check restore status now
- POST /api/wizard/reset - Start over after a finished restore
"""

from flask import Blueprint, jsonify, request, session

from logging_config import get_logger
from web.services import wizard_service

logger = get_logger(__name__)

wizard_bp = Blueprint("wizard", __name__, url_prefix="/api/wizard")

SESSION_KEY = "wizard_id"


def _current_wizard():
    wizard_id = session.get(SESSION_KEY)
    if not wizard_id:
        wizard_id = wizard_service.new_wizard_id()
        session[SESSION_KEY] = wizard_id
    return wizard_service.get_wizard(wizard_id)


def _session_response(wizard, status: int = 200):
    return jsonify({"session": wizard_service.snapshot(wizard)}), status


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@wizard_bp.route("", methods=["GET"])
def wizard_state():
    try:
        wizard = _current_wizard()
        wizard.ensure_started()
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard state error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/auth/check", methods=["POST"])
def wizard_check_auth():
    try:
        wizard = _current_wizard()
        wizard.check_auth()
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard auth check error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/project", methods=["POST"])
def wizard_select_project():
    project_id = _json_body().get("projectId")
    if not project_id:
        return jsonify({"error": "projectId is required"}), 400

    try:
        wizard = _current_wizard()
        wizard.select_project(project_id)
        return _session_response(wizard)
    except wizard_service.InvalidIdentifierError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Wizard project selection error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/database", methods=["POST"])
def wizard_select_database():
    database_id = _json_body().get("databaseId")
    if not database_id:
        return jsonify({"error": "databaseId is required"}), 400

    try:
        wizard = _current_wizard()
        wizard.select_database(database_id)
        return _session_response(wizard)
    except wizard_service.InvalidIdentifierError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error(f"Wizard database selection error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/backup", methods=["POST"])
def wizard_select_backup():
    backup_path = _json_body().get("backupPath")
    if not backup_path:
        return jsonify({"error": "backupPath is required"}), 400

    try:
        wizard = _current_wizard()
        wizard.select_backup(backup_path)
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard backup selection error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/manual-path", methods=["POST"])
def wizard_manual_path():
    data = _json_body()
    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        return jsonify({"error": "enabled must be a boolean"}), 400
    path = data.get("path") or ""
    if not isinstance(path, str):
        return jsonify({"error": "path must be a string"}), 400

    try:
        wizard = _current_wizard()
        wizard.set_manual_path(enabled, path)
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard manual path error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/advance", methods=["POST"])
def wizard_advance():
    try:
        wizard = _current_wizard()
        wizard.advance()
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard advance error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/back", methods=["POST"])
def wizard_back():
    try:
        wizard = _current_wizard()
        wizard.go_back()
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard back error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/confirm", methods=["POST"])
def wizard_confirm():
    """
    Starts the restore. A failed start keeps the wizard on the review step
    and answers 409 with the classified error. A confirm that did not start
    anything (another one in flight, or not on the review step) answers 200
    with the current session.
    """
    try:
        wizard = _current_wizard()
        _, start_error = wizard.start_restore()
        snapshot = wizard_service.snapshot(wizard)

        if start_error is not None:
            body = {
                "error": start_error.message,
                "errorKind": start_error.kind,
                "session": snapshot,
            }
            if start_error.guidance:
                body["guidance"] = start_error.guidance
            return jsonify(body), 409

        return jsonify({"session": snapshot})
    except Exception as e:
        logger.error(f"Wizard confirm error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/status", methods=["POST"])
def wizard_status():
    try:
        wizard = _current_wizard()
        wizard.check_status()
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard status error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500


@wizard_bp.route("/reset", methods=["POST"])
def wizard_reset():
    try:
        wizard = _current_wizard()
        wizard.reset()
        return _session_response(wizard)
    except Exception as e:
        logger.error(f"Wizard reset error: {e}", exc_info=True)
        return jsonify({"error": str(e)}), 500

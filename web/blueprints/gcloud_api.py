"""
gcloud API Blueprint.

Stateless JSON endpoints over the gcloud gateway:
- GET /api/auth/status - gcloud installation and login status
- GET /api/projects - Projects visible to the active account
- GET /api/databases - Firestore databases of a project
- GET /api/backups - Export folders in the project's storage bucket
- POST /api/restore/start - Start a Firestore import
- GET /api/restore/status - Status of an import operation
- GET /api/restore/operations - Recent operations of a database
"""

from flask import Blueprint, jsonify, request

from logging_config import get_logger
from web.services import gcloud_service

logger = get_logger(__name__)

gcloud_api = Blueprint("gcloud_api", __name__, url_prefix="/api")


def _invalid_argument_response(e):
    return jsonify({"error": e.message}), 400


@gcloud_api.route("/auth/status", methods=["GET"])
def auth_status():
    try:
        return jsonify(gcloud_service.get_auth_status())
    except Exception as e:
        logger.error(f"Auth status error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to check auth status"}), 500


@gcloud_api.route("/projects", methods=["GET"])
def projects():
    try:
        return jsonify({"projects": gcloud_service.list_projects()})
    except Exception as e:
        logger.error(f"List projects error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to list projects"}), 500


@gcloud_api.route("/databases", methods=["GET"])
def databases():
    project_id = request.args.get("projectId")
    if not project_id:
        return jsonify({"error": "projectId is required"}), 400

    try:
        return jsonify({"databases": gcloud_service.list_databases(project_id)})
    except gcloud_service.GatewayError as e:
        if e.kind == "invalid_argument":
            return _invalid_argument_response(e)
        logger.error(f"List databases error: {e}")
        return jsonify({"error": e.message}), 500
    except Exception as e:
        logger.error(f"List databases error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to list databases"}), 500


@gcloud_api.route("/backups", methods=["GET"])
def backups():
    project_id = request.args.get("projectId")
    if not project_id:
        return jsonify({"error": "projectId is required"}), 400

    try:
        return jsonify({"backups": gcloud_service.list_backups(project_id)})
    except gcloud_service.GatewayError as e:
        if e.kind == "invalid_argument":
            return _invalid_argument_response(e)
        logger.error(f"List backups error: {e}")
        return jsonify({"error": e.message}), 500
    except Exception as e:
        logger.error(f"List backups error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to list backups"}), 500


@gcloud_api.route("/restore/start", methods=["POST"])
def restore_start():
    """
    Starts a Firestore import. A failure response carries the tool's message
    plus its classification, so the UI can show the location-mismatch guidance.
    """
    data = request.get_json(silent=True) or {}
    backup_path = data.get("backupPath")
    project_id = data.get("projectId")
    database_id = data.get("databaseId")

    if not backup_path or not project_id or not database_id:
        return (
            jsonify({"error": "backupPath, projectId, and databaseId are required"}),
            400,
        )

    try:
        operation = gcloud_service.start_restore(backup_path, project_id, database_id)
        logger.info(f"Restore started via API: {operation['name']}")
        return jsonify({"operation": operation})
    except gcloud_service.GatewayError as e:
        if e.kind == "invalid_argument":
            return _invalid_argument_response(e)
        logger.error(f"Restore start error: {e}")
        classified = gcloud_service.describe_restore_error(e.message)
        body = {"error": e.message or "Failed to start restore", "errorKind": classified["kind"]}
        if classified.get("guidance"):
            body["guidance"] = classified["guidance"]
        return jsonify(body), 500
    except Exception as e:
        logger.error(f"Restore start error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to start restore"}), 500


@gcloud_api.route("/restore/status", methods=["GET"])
def restore_status():
    operation_name = request.args.get("operationName")
    project_id = request.args.get("projectId")
    database_id = request.args.get("databaseId")

    if not operation_name or not project_id or not database_id:
        return (
            jsonify({"error": "operationName, projectId, and databaseId are required"}),
            400,
        )

    try:
        status = gcloud_service.get_restore_status(operation_name, project_id, database_id)
        return jsonify({"status": status})
    except gcloud_service.GatewayError as e:
        if e.kind == "invalid_argument":
            return _invalid_argument_response(e)
        logger.warning(f"Restore status error: {e}")
        return jsonify({"error": e.message or "Failed to get restore status"}), 500
    except Exception as e:
        logger.error(f"Restore status error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to get restore status"}), 500


@gcloud_api.route("/restore/operations", methods=["GET"])
def restore_operations():
    project_id = request.args.get("projectId")
    database_id = request.args.get("databaseId")
    limit = request.args.get("limit")

    if not project_id or not database_id:
        return jsonify({"error": "projectId and databaseId are required"}), 400

    try:
        operations = gcloud_service.list_operations(project_id, database_id, limit)
        return jsonify({"operations": operations})
    except gcloud_service.GatewayError as e:
        if e.kind == "invalid_argument":
            return _invalid_argument_response(e)
        logger.error(f"List operations error: {e}")
        return jsonify({"error": e.message}), 500
    except Exception as e:
        logger.error(f"List operations error: {e}", exc_info=True)
        return jsonify({"error": str(e) or "Failed to list operations"}), 500

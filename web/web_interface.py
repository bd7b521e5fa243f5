# ------------------------------------------------------------------------------
# web_interface.py
# ------------------------------------------------------------------------------

from flask import Flask, jsonify

from config import get_config
from logging_config import get_logger
from web.blueprints.gcloud_api import gcloud_api
from web.blueprints.wizard import wizard_bp

logger = get_logger(__name__)


def create_web_interface(config: dict | None = None) -> Flask:
    """
    Creates the Flask server exposing the gcloud API and the restore wizard.

    Args:
        config: Optional configuration dict; defaults to get_config().
    """
    config = config or get_config()

    server = Flask(__name__)
    server.secret_key = config["SECRET_KEY"]
    server.config["SESSION_COOKIE_HTTPONLY"] = True
    server.config["SESSION_COOKIE_SAMESITE"] = "Lax"

    server.register_blueprint(gcloud_api)
    server.register_blueprint(wizard_bp)

    @server.route("/health")
    def health():
        return jsonify({"status": "ok"})

    logger.info("Restore wizard web interface ready.")
    return server

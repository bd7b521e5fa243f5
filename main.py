# ------------------------------------------------------------------------------
# Main Script for the Firestore Restore Wizard
# main.py
# ------------------------------------------------------------------------------
import atexit

from config import get_config
config = get_config()
from logging_config import get_logger
logger = get_logger(__name__)

from web.services import wizard_service
from web.web_interface import create_web_interface

# --------------------------------------------------------------------------
# Configuration Parameters
# --------------------------------------------------------------------------
_debug = config["DEBUG_MODE"]

logger.info(f"Debug mode is {'enabled' if _debug else 'disabled'}.")
logger.info(
    f"gcloud binary: {config['GCLOUD_BINARY']}, gsutil binary: {config['GSUTIL_BINARY']}, "
    f"bucket suffix: {config['STORAGE_BUCKET_SUFFIX']}, "
    f"poll interval: {config['POLL_INTERVAL_SECONDS']}s"
)

# Expose the Flask server as the WSGI app.
app = create_web_interface(config)

# Stop restore status pollers on shutdown
atexit.register(wizard_service.discard_all)

if __name__ == '__main__':
    try:
        app.run(debug=_debug, host=config["WEB_HOST"], port=config["WEB_PORT"], threaded=True)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received. Shutting down restore wizard...")
        wizard_service.discard_all()

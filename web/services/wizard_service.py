"""
Wizard Service - Web Layer Service for Restore Wizard Sessions.

Keeps one RestoreWizard per browser client. The Flask session cookie only
carries the wizard id; the wizard itself lives in this process.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from typing import Any

from config import get_config
from core import gcloud_core
from core.restore_session import session_snapshot
from core.restore_wizard import RestoreWizard

logger = logging.getLogger(__name__)

MAX_WIZARDS = 64

InvalidIdentifierError = gcloud_core.InvalidIdentifierError

_wizards: "OrderedDict[str, RestoreWizard]" = OrderedDict()
_lock = threading.Lock()


def new_wizard_id() -> str:
    return uuid.uuid4().hex


def get_wizard(wizard_id: str) -> RestoreWizard:
    """Returns the wizard for ``wizard_id``, creating it on first use."""
    with _lock:
        wizard = _wizards.get(wizard_id)
        if wizard is not None:
            _wizards.move_to_end(wizard_id)
            return wizard

        wizard = RestoreWizard.from_config(gcloud_core.get_gateway(), get_config())
        _wizards[wizard_id] = wizard
        logger.info(f"Created restore wizard session {wizard_id[:8]}")

        while len(_wizards) > MAX_WIZARDS:
            evicted_id, evicted = _wizards.popitem(last=False)
            evicted.shutdown()
            logger.info(f"Evicted idle restore wizard session {evicted_id[:8]}")
        return wizard


def discard_wizard(wizard_id: str) -> None:
    with _lock:
        wizard = _wizards.pop(wizard_id, None)
    if wizard is not None:
        wizard.shutdown()


def discard_all() -> None:
    with _lock:
        wizards = list(_wizards.values())
        _wizards.clear()
    for wizard in wizards:
        wizard.shutdown()


def snapshot(wizard: RestoreWizard) -> dict[str, Any]:
    """JSON-ready view of the wizard's current session."""
    return session_snapshot(wizard.session)

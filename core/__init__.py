"""
Restore Wizard Core Package.

This package contains the core logic of the application, separated from the
web layer. All gcloud access and the wizard state machine are coordinated
through core modules.

ARCHITECTURE RULES:
- core/ modules may only import from:
  - Python standard library
  - utils/ (CLI gateway and validation)
  - config (for global configuration)

- core/ modules MUST NOT import from:
  - web/ (no Flask dependencies)
  - flask, werkzeug, or any web-specific packages

- All new business logic should be placed here, not in web/
"""

__all__ = [
    "gcloud_core",
    "restore_errors",
    "restore_session",
    "restore_wizard",
    "status_poller",
]

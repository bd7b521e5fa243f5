"""
Restore Wizard Web Blueprints Package.

This package contains Flask Blueprints for modular route organization:
- gcloud_api: stateless gcloud resource endpoints under /api
- wizard: session-scoped restore wizard endpoints under /api/wizard
"""

__all__ = ["gcloud_api", "wizard"]

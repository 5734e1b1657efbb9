"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Each domain (auth, services, proposals, notifications,
wallet) has a service in ``services``, schemas in ``schemas`` and a
router in ``api/v1/endpoints``.
"""

from .main import app, create_app  # noqa: F401

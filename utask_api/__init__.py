"""
Top‑level package for the UTASK API.

The web application lives in ``utask_api.app`` (``utask_api.app.main:app``
for ASGI servers) and the maintenance commands in ``utask_api.cli``.
"""

__all__ = []

"""
Top-level package for the Geo Events API.

All functionality lives in submodules under ``app``; import the ASGI
application as ``geo_events_api.app.main:app``.
"""

__all__ = []

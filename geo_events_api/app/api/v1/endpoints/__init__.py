"""
Endpoint modules for API v1.

``events``, ``users`` and ``audit`` each define an ``APIRouter``;
``router.py`` mounts them under their prefixes.
"""

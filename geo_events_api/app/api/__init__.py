"""
Versioned HTTP API.

Each version lives in its own subpackage (currently ``v1``) and exposes
a ``router`` that ``main.py`` mounts under ``/api/<version>``.
"""

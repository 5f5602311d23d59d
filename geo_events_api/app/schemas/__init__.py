"""
Pydantic models for request and response bodies.

``event`` holds event payloads and search filters, ``user`` holds
registration, login and the authenticated ``Actor``.
"""

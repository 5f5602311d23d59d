"""
Service layer.

Business rules live here, independent of HTTP.  Event persistence goes
through ``EventStore``; everything else raises ``ServiceError``
subclasses that the API layer renders as JSON.
"""

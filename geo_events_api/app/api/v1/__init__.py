"""
Version 1 of the Geo Events API: events, users and audit logs.
"""

"""Turn/action processing helpers.

This package centralizes validation so the HTTP API, the console client and tests
all flow through the same checks before an action touches a session.
"""

"""Core turn engine primitives (ledger, RNG, actions, event tables, termination, turn loop).

Kept free of FastAPI and Redis concerns so it can be reused by API routes, the console client, and tests.
"""

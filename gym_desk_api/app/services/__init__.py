"""
Service layer.

Each service encapsulates the business rules of one collection and
works against an injected ``SQLiteRepository``.  API handlers build
services per request (see ``api/v1/deps.py``); tests can build them
directly around a temporary database.
"""

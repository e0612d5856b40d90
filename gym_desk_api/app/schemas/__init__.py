"""
Pydantic schema definitions for API payloads.

Each collection defines ``Create``, ``Update`` and ``Read`` models.
The ``Read`` model is also the storage shape: services persist
``Read.model_dump(mode="json")`` and the replica keeps the same
dictionaries, so both sides agree on field names and formats.
"""

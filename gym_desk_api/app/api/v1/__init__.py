"""
Version 1 of the API.

All routes live under ``/api/v1`` and, except for ``/health``, require
a bearer token.  Responses use the ``{"success": ..., "data": ...}``
envelope built in ``responses.py``.
"""

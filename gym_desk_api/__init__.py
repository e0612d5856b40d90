"""
Top-level package for the Gym Desk Record Store API.

The package provides no public exports; all functionality lives in
submodules under ``app`` (``gym_desk_api.app.main:app`` is the ASGI
application).
"""

__all__ = []

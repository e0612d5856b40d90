"""
Application package initializer.

The project is organised into logical pieces: ``core`` (configuration,
logging, storage, errors and shared rules), ``schemas`` (pydantic
models), ``services`` (business rules per collection) and ``api``
(versioned routers).  The ASGI app is created in ``main``; it is not
imported here so that ``core`` and ``schemas`` can be used by the
replica without building the web application.
"""

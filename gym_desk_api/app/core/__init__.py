"""Core infrastructure: configuration, logging, storage, errors and shared rules."""

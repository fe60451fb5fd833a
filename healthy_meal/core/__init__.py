"""Core utilities and shared application primitives.

Configuration, error types, request validation, the outbound API helper and
the FastAPI dependencies and middleware built on them.
"""

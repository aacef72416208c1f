"""
FastAPI REST service for the book catalog.

This package provides:
- CRUD endpoints over the ``books`` collection
- MongoDB connection pooling and per-request sessions
- Structured logging and environment-driven configuration
"""

__version__ = "1.0.0"

"""Shared package for the urban tree census backend.

This package contains code used by every layer of the Flask API and by its
command line tools. It includes:

- Database models (models.py) - SQLAlchemy models for tree records, users and counters
- Enums (enums.py) - Shared enumeration definitions for error kinds and token types
- Errors (errors.py) - Exception taxonomy raised by the store and auth layers
- Validation utilities (validation.py, schemas.py) - Submission checks and Pydantic schemas
"""

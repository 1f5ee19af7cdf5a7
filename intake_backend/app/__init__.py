"""
File Intake Backend Package

This package contains the FastAPI application that accepts uploaded files,
stores them under generated names, serves them back and deletes them by
name.
"""

from .main import app  # noqa: F401

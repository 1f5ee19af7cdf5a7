"""Shared fixtures for the intake backend tests."""
import os
import tempfile

# keep the module-level app from writing into the source tree
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="intake-uploads-"))
os.environ.setdefault("LOG_FILE", "")

import pytest
from fastapi.testclient import TestClient

from intake_backend.app.core.config import DEFAULT_ALLOWED_CONTENT_TYPES, Settings
from intake_backend.app.main import create_app

TEST_MAX_BYTES = 1024


def visible_files(root):
    """Names a client could fetch: everything except in-progress temp files."""
    return sorted(name for name in os.listdir(root) if not name.startswith("."))


@pytest.fixture
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def place_kwargs(upload_root):
    """Keyword arguments for storage.place against the temp root."""
    return {
        "root": upload_root,
        "allowed_content_types": DEFAULT_ALLOWED_CONTENT_TYPES,
        "max_bytes": TEST_MAX_BYTES,
    }


@pytest.fixture
def intake_settings(upload_root):
    settings = Settings()
    settings.UPLOAD_DIR = str(upload_root)
    settings.LOG_FILE = ""
    settings.MAX_UPLOAD_BYTES = TEST_MAX_BYTES
    settings.ALLOWED_CONTENT_TYPES = DEFAULT_ALLOWED_CONTENT_TYPES
    settings.FRONTEND_URL = None
    return settings


@pytest.fixture
def client(intake_settings):
    with TestClient(create_app(intake_settings)) as test_client:
        yield test_client

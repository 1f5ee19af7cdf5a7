"""HTTP tests for the upload / delete / serve surface."""
import os
import re
import time

import pytest
from fastapi.testclient import TestClient

from intake_backend.app import storage
from intake_backend.app.core.config import Settings
from intake_backend.app.main import create_app

from .conftest import TEST_MAX_BYTES, visible_files

FILE_URL = re.compile(r"/uploads/[A-Za-z0-9]{8}[0-9a-z]+-(?P<original>.+)")


def upload(client, name, content, content_type):
    return client.post("/upload", files={"file": (name, content, content_type)})


def delete(client, body):
    return client.request("DELETE", "/delete", json=body)


def test_root_route(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert resp.text == "API is running..."


def test_bootcheck(client):
    assert client.get("/health/bootcheck").json() == {"status": "starting-ok"}


def test_health_reports_storage_and_limits(client):
    data = client.get("/health/").json()

    assert data["storage"] == "ok"
    assert data["max_upload_bytes"] == TEST_MAX_BYTES
    assert "image/png" in data["allowed_content_types"]


def test_upload_serve_delete_scenario(client, upload_root):
    content = b"0123456789"

    resp = upload(client, "a.png", content, "image/png")
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    match = FILE_URL.fullmatch(data["fileUrl"])
    assert match and match.group("original") == "a.png"
    stored_name = data["fileUrl"].rsplit("/", 1)[-1]
    assert visible_files(upload_root) == [stored_name]

    served = client.get(data["fileUrl"])
    assert served.status_code == 200
    assert served.content == content
    assert served.headers["content-type"] == "image/png"

    resp = delete(client, {"fileName": stored_name})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "File deleted successfully"}
    assert client.get(data["fileUrl"]).status_code == 404

    resp = delete(client, {"fileName": stored_name})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "File not found"}


def test_upload_sanitizes_name(client):
    resp = upload(client, "my report (final).pdf", b"%PDF-1.7", "application/pdf")

    assert resp.status_code == 200
    assert resp.json()["fileUrl"].endswith("-my_report__final_.pdf")


def test_upload_rejects_unsupported_type(client, upload_root):
    resp = upload(client, "notes.txt", b"hello", "text/plain")

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Unsupported file type"}
    assert os.listdir(upload_root) == []


def test_upload_rejects_oversized_file(client, upload_root):
    resp = upload(client, "big.png", b"x" * (TEST_MAX_BYTES + 1), "image/png")

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "File too large"}
    assert os.listdir(upload_root) == []


def test_upload_without_file_field(client):
    resp = client.post("/upload", data={"note": "no file here"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "No file found in the request body"}


def test_upload_disk_failure_is_500_without_paths(client, upload_root, monkeypatch):
    def disk_full(fd):
        raise OSError(28, f"No space left on device: {upload_root}")

    monkeypatch.setattr(storage.os, "fsync", disk_full)

    resp = upload(client, "a.png", b"0123456789", "image/png")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Error saving file"}
    assert str(upload_root) not in resp.text
    assert os.listdir(upload_root) == []


@pytest.mark.parametrize("body", [{}, {"fileName": ""}, None])
def test_delete_requires_file_name(client, body):
    resp = client.request("DELETE", "/delete") if body is None else delete(client, body)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "File name is required"}


@pytest.mark.parametrize("name", ["../../etc/passwd", "../outside.txt", "/etc/passwd", ".."])
def test_delete_rejects_traversal(client, upload_root, name):
    sentinel = upload_root.parent / "outside.txt"
    sentinel.write_text("keep me")

    resp = delete(client, {"fileName": name})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid file name"}
    assert sentinel.exists()


def test_delete_malformed_body(client):
    resp = delete(client, {"fileName": 42})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid request"}


def test_delete_unlink_failure_is_500(client, upload_root, monkeypatch):
    (upload_root / "locked.pdf").write_bytes(b"%PDF")

    def refuse(self, missing_ok=False):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(storage.Path, "unlink", refuse)

    resp = delete(client, {"fileName": "locked.pdf"})

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Error deleting file"}


def test_missing_stored_file_is_404(client):
    assert client.get("/uploads/doesnotexist-a.png").status_code == 404


def test_security_headers(client):
    resp = client.get("/")

    assert resp.headers["content-security-policy"] == "default-src 'self'; frame-ancestors 'self'"
    assert resp.headers["x-content-type-options"] == "nosniff"
    assert resp.headers["x-frame-options"] == "SAMEORIGIN"


def test_frontend_url_drives_cors_and_frame_ancestors(intake_settings):
    intake_settings.FRONTEND_URL = "https://app.example.com"
    with TestClient(create_app(intake_settings)) as frontend_client:
        resp = frontend_client.get("/", headers={"Origin": "https://app.example.com"})

    assert resp.headers["access-control-allow-origin"] == "https://app.example.com"
    assert resp.headers["access-control-allow-credentials"] == "true"
    assert "frame-ancestors 'self' https://app.example.com" in resp.headers["content-security-policy"]
    assert "x-frame-options" not in resp.headers


def test_create_app_creates_storage_root(tmp_path):
    app_settings = Settings()
    app_settings.UPLOAD_DIR = str(tmp_path / "fresh" / "uploads")
    app_settings.LOG_FILE = ""

    create_app(app_settings)

    assert (tmp_path / "fresh" / "uploads").is_dir()


def test_create_app_fails_when_root_cannot_be_created(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    app_settings = Settings()
    app_settings.UPLOAD_DIR = str(blocker / "uploads")
    app_settings.LOG_FILE = ""

    with pytest.raises(OSError):
        create_app(app_settings)


def test_upload_rejects_name_too_long(client, upload_root):
    resp = upload(client, "a" * 300 + ".png", b"abc", "image/png")

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "File name too long"}
    assert os.listdir(upload_root) == []


def test_partial_uploads_are_never_served(client, upload_root):
    (upload_root / ".incoming-abc.part").write_bytes(b"half written")

    resp = client.get("/uploads/.incoming-abc.part")

    assert resp.status_code == 404


def test_create_app_purges_stale_partial_uploads(intake_settings, upload_root):
    stale = upload_root / ".incoming-crashed.part"
    fresh = upload_root / ".incoming-live.part"
    stale.write_bytes(b"left over")
    fresh.write_bytes(b"in flight")
    stamp = time.time() - 2 * intake_settings.STALE_UPLOAD_SECONDS
    os.utime(stale, (stamp, stamp))

    create_app(intake_settings)

    assert not stale.exists()
    assert fresh.exists()

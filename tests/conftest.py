import pytest
from fastapi.testclient import TestClient

from config import DEFAULT_CONFIG
from main import create_app

ADMIN = {"username": "admin", "password": "s3cret-pass"}

APPLICANT = {
    "fullName": "Jane Doe",
    "phone": "0700000000",
    "email": "jane@x.com",
    "description": "test",
}

KUCCPS_APPLICANT = {
    **APPLICANT,
    "indexNumber": "12345678/001",
    "kcseYear": "2020",
    "birthCertNumber": "BC-998877",
    "primaryIndexNumber": "87654321/002",
}


@pytest.fixture
def config(tmp_path):
    return {
        **DEFAULT_CONFIG,
        "database_url": f"sqlite:///{tmp_path / 'submissions.db'}",
        "upload_dir": str(tmp_path / "uploads"),
        "admin_username": ADMIN["username"],
        "admin_password": ADMIN["password"],
    }


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    response = client.post("/api/admin/login", json=ADMIN)
    assert response.status_code == 200
    return client


def submit_documents(client, files=None, **fields):
    data = {**APPLICANT, **fields}
    if files is None:
        files = {
            "birthCertificate": ("birth.pdf", b"%PDF-1.4 birth certificate", "application/pdf"),
            "resultSlip": ("slip.png", b"\x89PNG result slip", "image/png"),
        }
    return client.post("/submit", data=data, files=files, follow_redirects=False)

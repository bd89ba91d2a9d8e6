from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from rental.api.deps.services import get_blob_storage, get_upload_limits
from rental.auth.identity import Identity, issue_token
from rental.core.config import settings
from rental.db.session import get_store
from rental.db.store import RecordStore, SeedData, build_seed
from rental.services.media import UploadLimits
from rental.storage.blobs import LocalBlobStorage

SEED_TENANT_ID = 2


# ---------------------------------------------------------
# Identities
# ---------------------------------------------------------
@pytest.fixture()
def admin_identity() -> Identity:
    return Identity(id="admin", username="admin", role="admin", name="Administrator")


@pytest.fixture()
def tenant_identity() -> Identity:
    return Identity(id=SEED_TENANT_ID, username="tenant", role="tenant", name="Test Tenant")


@pytest.fixture()
def other_tenant_identity() -> Identity:
    return Identity(id=3, username="neighbour", role="tenant", name="Neighbour")


# ---------------------------------------------------------
# Store + blob storage on tmp_path
# ---------------------------------------------------------
@pytest.fixture(scope="session")
def seed() -> SeedData:
    """Built once: hashing the seed password with bcrypt is slow."""
    return build_seed(settings)


@pytest.fixture()
def store(tmp_path: Path, seed: SeedData) -> RecordStore:
    """
    Seed tenant (id=2, "tenant"/"123456") plus a second tenant (id=3)
    so that ownership checks have someone to fail against.
    """
    s = RecordStore(tmp_path / "data.json", seed=seed)
    s.load()
    s.tenants.append(
        {
            "id": 3,
            "username": "neighbour",
            "password": seed.tenants[0]["password"],
            "name": "Neighbour",
            "room_number": "202",
            "role": "tenant",
            "created_at": "2024-01-02T00:00:00+00:00",
        }
    )
    s.save()
    return s


@pytest.fixture()
def blobs(tmp_path: Path) -> LocalBlobStorage:
    return LocalBlobStorage(tmp_path / "uploads", url_prefix="/uploads")


@pytest.fixture()
def upload_limits() -> UploadLimits:
    return UploadLimits(
        allowed_extensions=(".jpeg", ".jpg", ".png", ".gif", ".pdf"),
        max_bytes=1024,
        max_files=3,
    )


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(store, blobs, upload_limits):
    from rental.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_store] = lambda: store
    fastapi_app.dependency_overrides[get_blob_storage] = lambda: blobs
    fastapi_app.dependency_overrides[get_upload_limits] = lambda: upload_limits
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


def bearer(identity: Identity) -> dict:
    return {"Authorization": f"Bearer {issue_token(identity)}"}


@pytest.fixture()
def admin_headers(admin_identity) -> dict:
    return bearer(admin_identity)


@pytest.fixture()
def tenant_headers(tenant_identity) -> dict:
    return bearer(tenant_identity)


@pytest.fixture()
def other_tenant_headers(other_tenant_identity) -> dict:
    return bearer(other_tenant_identity)

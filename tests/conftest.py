import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.schemas.catalog import BookCreate, CategoryCreate
from app.store import MemoryStore, SqlStore

ADMIN_EMAIL = "root@example.com"
ADMIN_PASSWORD = "Root@12345"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        store_backend="memory",
        secret_key="test-secret",
        upload_dir=tmp_path / "uploads",
        bootstrap_admin_email=ADMIN_EMAIL,
        bootstrap_admin_password=ADMIN_PASSWORD,
    )


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    # Every store test runs against both backends
    if request.param == "memory":
        backend = MemoryStore()
    else:
        backend = SqlStore.from_url(f"sqlite:///{tmp_path / 'library_test.db'}")
    backend.init()
    yield backend
    backend.close()


@pytest.fixture
def make_user(store):
    counter = iter(range(1, 10_000))

    def _make(email=None, name="Reader", role="user", is_blocked=False):
        email = email or f"reader{next(counter)}@example.com"
        return store.create_user(
            email=email, password_hash="not-a-real-hash", name=name, role=role, is_blocked=is_blocked
        )

    return _make


@pytest.fixture
def make_category(store):
    def _make(name="Science Fiction", description=None):
        return store.create_category(CategoryCreate(name=name, description=description))

    return _make


@pytest.fixture
def make_book(store):
    def _make(title="Dune", author="Frank Herbert", category_id=None, **extra):
        return store.create_book(
            BookCreate(title=title, author=author, description=f"About {title}", category_id=category_id, **extra)
        )

    return _make


# ---------- HTTP ----------

@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def client(settings, memory_store):
    app = create_app(settings=settings, store=memory_store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def register(client):
    """Register a reader; returns (user_json, auth headers)."""

    def _register(email, name="Reader", password="password123"):
        response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 200, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _register

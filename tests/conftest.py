import pytest

from app import create_app
from file_manager import FileManager
from identity import JsonIdentityStore
from repository import JsonRepository
from storage import JsonStorage


@pytest.fixture
def storage(tmp_path):
    store = JsonStorage(tmp_path / "data" / "blog.json")
    store.ensure_created()
    return store


@pytest.fixture
def repo(storage):
    return JsonRepository(storage)


@pytest.fixture
def identity(storage):
    return JsonIdentityStore(storage)


@pytest.fixture
def files(tmp_path):
    return FileManager(tmp_path / "images")


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "DATA_PATH": tmp_path / "data" / "blog.json",
            "IMAGES_PATH": tmp_path / "images",
        }
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    client.post("/admin", data={"username": "admin", "password": "password1"})
    return client

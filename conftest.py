import os

# Vor dem Import von main/dependencies setzen, sonst greift das Default-Limit
os.environ.setdefault("RATE_LIMIT", "1000/minute")
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient

from database import init_db, make_engine, make_session_factory
from main import create_app
from storage import DatabaseStorage, MemStorage


@pytest.fixture
def mem_storage():
    return MemStorage()


@pytest.fixture
def db_storage():
    # SQLite im Speicher statt MySQL, gleiche Tabellen
    engine = make_engine("sqlite://")
    init_db(engine)
    storage = DatabaseStorage(make_session_factory(engine))
    storage.seed_fixtures()
    yield storage
    engine.dispose()


@pytest.fixture(params=["memory", "database"])
def storage(request):
    name = "mem_storage" if request.param == "memory" else "db_storage"
    return request.getfixturevalue(name)


@pytest.fixture
def client(storage):
    # Host header must match the TrustedHostMiddleware
    return TestClient(create_app(storage=storage), base_url="http://localhost:8000")

import os
import tempfile
from pathlib import Path

# Configure before any studyhub import: settings and the engine are built at import time.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="studyhub-tests-"))
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from studyhub.database import create_db_and_tables, drop_db_and_tables, engine
from studyhub.main import app
from studyhub.sessions import SessionStore


@pytest.fixture(autouse=True)
def fresh_db():
    """Give every test empty tables."""
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def client():
    """A TestClient with the app lifespan (tables + session store) running."""
    with TestClient(app) as c:
        yield c

import os, tempfile
import pytest

fd, _DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["OPERATOR_SECRET"] = "operator-secret"
os.environ["BCRYPT_ROUNDS"] = "4"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from db import Base, get_db

OPERATOR = {"Authorization": "Bearer operator-secret"}


def bearer(password):
    return {"Authorization": f"Bearer {password}"}


@pytest.fixture(scope="session")
def test_engine():
    engine = create_engine(os.environ["DATABASE_URL"], connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    os.remove(_DB_PATH)

@pytest.fixture(scope="session")
def TestingSessionLocal(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

@pytest.fixture(scope="session", autouse=True)
def override_di(TestingSessionLocal):
    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = _get_db

@pytest.fixture
def db_session(TestingSessionLocal):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def make_questionnaire(client):
    """Create a questionnaire over HTTP; returns (id, generated password, response json)."""
    def _make(**overrides):
        body = {
            "title": "Feedback",
            "description": "desc",
            "questions": [
                {"id": "q1", "label": "Happy?", "type": "radio", "options": ["Yes", "No"]},
                {"id": "q2", "label": "Comments", "type": "text"},
            ],
        }
        body.update(overrides)
        r = client.post("/questionnaires", json=body)
        assert r.status_code == 201, r.text
        data = r.json()
        return data["id"], data["generatedPassword"], data
    return _make

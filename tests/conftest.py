# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlmodel import create_engine
from sqlalchemy.pool import StaticPool

from promptlab.db import create_schema, enable_sqlite_foreign_keys
from promptlab.deps import engine_dep
from promptlab.main import app
from promptlab.services.prompts import PromptRepository
from promptlab.services.sequencer import StepSequencer
from promptlab.services.tags import TagRepository
from promptlab.services.workflows import WorkflowRepository


@pytest.fixture()
def engine():
    # una sola conexión en memoria para todas las sesiones de la prueba,
    # con claves foráneas activas como en get_engine()
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(eng)
    create_schema(eng)
    return eng


@pytest.fixture()
def prompts(engine):
    return PromptRepository(engine)


@pytest.fixture()
def tags(engine):
    return TagRepository(engine)


@pytest.fixture()
def workflows(engine):
    return WorkflowRepository(engine)


@pytest.fixture()
def sequencer(engine):
    return StepSequencer(engine)


@pytest.fixture()
def client(engine):
    """Cliente de pruebas contra la app, con la BD en memoria de la prueba."""
    app.dependency_overrides[engine_dep] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    return {"Authorization": "Bearer mock-alice"}


@pytest.fixture()
def other_headers():
    return {"Authorization": "Bearer mock-bob"}

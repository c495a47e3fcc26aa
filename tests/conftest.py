"""Shared fixtures: a file-backed SQLite tool database per test."""

import pytest

from config import DatabaseSettings, ServerSettings
from database import ConnectionFactory
from repositories import SQLToolRepository, Tool


@pytest.fixture
def settings(tmp_path):
    return DatabaseSettings(url=f"sqlite:///{tmp_path / 'tools.db'}")


@pytest.fixture
def connections(settings):
    factory = ConnectionFactory(settings)
    yield factory
    factory.dispose()


@pytest.fixture
def repo(connections):
    """Repository with the tool table already created."""
    repository = SQLToolRepository(connections)
    repository.init_schema()
    return repository


@pytest.fixture
def app(repo):
    from app import create_app

    flask_app = create_app(repository=repo, settings=ServerSettings())
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


def make_tool(name: str = "Hammer", type: str = "Manual",
              primary_use: str = "Driving nails") -> Tool:
    return Tool(name=name, type=type, primary_use=primary_use)

"""Tests for repositories.sql_repository — CRUD, search, and connection release.

Each test gets a fresh file-backed SQLite database.
"""

import logging
import threading

import pytest
from sqlalchemy import event
from sqlalchemy.engine import CursorResult

from conftest import make_tool
from config import DatabaseSettings
from errors import DatabaseConnectionError, PersistenceError, ValidationError
from repositories import SQLToolRepository, Tool, create_repository


# ── CRUD ─────────────────────────────────────────────────────────────

class TestCreate:

    def test_create_assigns_id(self, repo):
        created = repo.create(make_tool())
        assert created.id > 0
        assert created.name == "Hammer"
        assert created.type == "Manual"
        assert created.primary_use == "Driving nails"

    def test_create_does_not_mutate_input(self, repo):
        tool = make_tool()
        repo.create(tool)
        assert tool.id == 0

    def test_round_trip(self, repo):
        created = repo.create(make_tool("Drill", "Electric", "Boring holes"))
        loaded = repo.get_by_id(created.id)
        assert loaded == created

    def test_ids_increase(self, repo):
        a = repo.create(make_tool("Saw"))
        b = repo.create(make_tool("Wrench"))
        assert b.id > a.id

    def test_missing_generated_id_is_persistence_error(self, repo, monkeypatch):
        monkeypatch.setattr(CursorResult, "inserted_primary_key", property(lambda self: (None,)))
        with pytest.raises(PersistenceError, match="no id generated") as exc_info:
            repo.create(make_tool())
        assert exc_info.value.operation == "create"
        assert not repo.connections.is_connected

    def test_missing_row_after_insert_is_persistence_error(self, repo, monkeypatch):
        monkeypatch.setattr(CursorResult, "first", lambda self: None)
        with pytest.raises(PersistenceError, match="not found after insert") as exc_info:
            repo.create(make_tool())
        assert exc_info.value.operation == "create"
        assert not repo.connections.is_connected


class TestGetById:

    def test_missing_id_returns_none(self, repo):
        assert repo.get_by_id(999) is None

    def test_zero_id_returns_none(self, repo):
        assert repo.get_by_id(0) is None


class TestUpdate:

    def test_update_existing(self, repo):
        created = repo.create(make_tool())
        other = repo.create(make_tool("Screwdriver", "Manual", "Turning screws"))

        changed = Tool(id=created.id, name="Sledgehammer", type="Manual", primary_use="Demolition")
        assert repo.update(changed) is True

        loaded = repo.get_by_id(created.id)
        assert loaded.id == created.id
        assert loaded.name == "Sledgehammer"
        assert loaded.primary_use == "Demolition"
        assert repo.get_by_id(other.id) == other

    def test_update_missing_returns_false(self, repo):
        assert repo.update(Tool(id=42, name="Ghost", type="None", primary_use="None")) is False

    def test_update_unpersisted_is_rejected(self, repo):
        with pytest.raises(ValidationError):
            repo.update(make_tool())


class TestDelete:

    def test_delete_existing(self, repo):
        created = repo.create(make_tool())
        assert repo.delete(created) is True
        assert repo.get_by_id(created.id) is None

    def test_delete_twice(self, repo):
        created = repo.create(make_tool())
        assert repo.delete(created) is True
        assert repo.delete(created) is False

    def test_delete_unpersisted_is_rejected(self, repo):
        with pytest.raises(ValidationError):
            repo.delete(make_tool())


# ── Search ───────────────────────────────────────────────────────────

class TestSearch:

    @pytest.fixture
    def stocked(self, repo):
        names = ["Hammer", "Sledgehammer", "Drill", "Hand saw", "100%_torque wrench"]
        return {repo.create(make_tool(name)).id: name for name in names}

    def test_substring_match(self, repo, stocked):
        found = {t.name for t in repo.search("ammer")}
        assert found == {"Hammer", "Sledgehammer"}

    def test_matches_exactly_the_containing_names(self, repo, stocked):
        for pattern in ["ammer", "ill", "saw", "torque", "e", "x"]:
            expected = {name for name in stocked.values() if pattern in name}
            assert {t.name for t in repo.search(pattern)} == expected

    def test_empty_pattern_returns_all(self, repo, stocked):
        found = repo.search("")
        assert {t.id for t in found} == set(stocked)

    def test_wildcards_match_literally(self, repo, stocked):
        assert [t.name for t in repo.search("%_")] == ["100%_torque wrench"]
        assert repo.search("_x") == []

    def test_empty_table(self, repo):
        assert repo.search("anything") == []


# ── Connection release ───────────────────────────────────────────────

class TestRelease:

    def test_connection_released_after_success(self, repo):
        repo.create(make_tool())
        assert not repo.connections.is_connected

    def test_statement_failure_releases_connection(self, connections):
        repository = SQLToolRepository(connections)

        # No table yet: every statement fails.
        with pytest.raises(PersistenceError) as exc_info:
            repository.search("Ham")
        assert exc_info.value.operation == "search"
        assert "tools" in exc_info.value.message
        assert not connections.is_connected

        repository.init_schema()
        created = repository.create(make_tool())
        assert repository.search("Ham") == [created]

    def test_persistence_error_chains_cause(self, connections):
        repository = SQLToolRepository(connections)
        with pytest.raises(PersistenceError) as exc_info:
            repository.get_by_id(1)
        assert exc_info.value.__cause__ is not None
        assert str(exc_info.value).startswith("Error during get_by_id:")

    def test_release_failure_does_not_mask_result(self, repo, monkeypatch, caplog):
        def broken_disconnect():
            raise DatabaseConnectionError("Error closing the database connection: boom")

        monkeypatch.setattr(repo.connections, "disconnect", broken_disconnect)

        with caplog.at_level(logging.WARNING):
            created = repo.create(make_tool())

        assert created.id > 0
        assert "Could not release connection after create" in caplog.text

    def test_release_failure_does_not_mask_error(self, connections, monkeypatch):
        repository = SQLToolRepository(connections)

        def broken_disconnect():
            raise DatabaseConnectionError("boom")

        monkeypatch.setattr(connections, "disconnect", broken_disconnect)

        with pytest.raises(PersistenceError):
            repository.search("x")

    def test_connection_error_propagates(self, tmp_path):
        missing = tmp_path / "missing" / "tools.db"
        repository = create_repository(DatabaseSettings(url=f"sqlite:///{missing}"))

        with pytest.raises(DatabaseConnectionError):
            repository.search("Ham")


# ── Shared factory ───────────────────────────────────────────────────

class TestSharedFactory:
    """Repositories built on one ConnectionFactory share its single connection."""

    def test_operations_do_not_interleave(self, connections):
        repo_a = SQLToolRepository(connections)
        repo_b = SQLToolRepository(connections)
        repo_a.init_schema()

        inserted = threading.Event()
        resume = threading.Event()

        def hold_after_insert(conn, clauseelement, multiparams, params, execution_options, result):
            if getattr(clauseelement, "is_insert", False) and not inserted.is_set():
                inserted.set()
                resume.wait(timeout=5)

        event.listen(connections.engine, "after_execute", hold_after_insert)
        results = {}
        errors = []

        def run(key, func):
            try:
                results[key] = func()
            except Exception as e:
                errors.append(e)

        try:
            writer = threading.Thread(target=run, args=("a", lambda: repo_a.create(make_tool())))
            writer.start()
            assert inserted.wait(timeout=5)

            reader = threading.Thread(target=run, args=("b", lambda: repo_b.get_by_id(1)))
            reader.start()
            reader.join(timeout=0.3)
            # Reader waits until the writer has released the connection.
            assert reader.is_alive()

            resume.set()
            writer.join(timeout=5)
            reader.join(timeout=5)
        finally:
            resume.set()
            event.remove(connections.engine, "after_execute", hold_after_insert)

        assert errors == []
        assert results["a"].id == 1
        assert results["b"] == results["a"]
        assert not connections.is_connected

    def test_repositories_share_the_factory_lock(self, connections):
        repo_a = SQLToolRepository(connections)
        repo_b = SQLToolRepository(connections)
        assert repo_a.connections.operation_lock is repo_b.connections.operation_lock


# ── Scenario ─────────────────────────────────────────────────────────

def test_hammer_lifecycle(repo):
    created = repo.create(Tool(name="Hammer", type="Manual", primary_use="Driving nails"))
    assert created.id == 1

    assert repo.search("Ham") == [created]

    created.name = "Sledgehammer"
    assert repo.update(created) is True
    assert repo.get_by_id(1).name == "Sledgehammer"

    assert repo.delete(created) is True
    assert repo.get_by_id(1) is None

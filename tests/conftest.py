import asyncio
from typing import Callable

import pytest

from tests.fixtures.whatsapp_fixtures import FakeSocket
from whatsterm.core.pipeline import IngestionPipeline
from whatsterm.db import DatabaseManager
from whatsterm.services.persistence_store import PersistenceStore


@pytest.fixture(scope="function")
def db_manager(tmp_path):
    """DatabaseManager on a fresh SQLite file with all tables created."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'whatsterm_test.db'}")
    manager.create_all()
    yield manager
    manager.dispose()


@pytest.fixture(scope="function")
def db(db_manager):
    with db_manager.db_session() as session:
        yield session


@pytest.fixture(scope="function")
def store(db_manager):
    return PersistenceStore(db_manager)


@pytest.fixture(scope="function")
def fake_socket():
    return FakeSocket()


@pytest.fixture(scope="function")
def pipeline(store, fake_socket):
    pipeline = IngestionPipeline(store)
    pipeline.attach(fake_socket)
    return pipeline


@pytest.fixture
def wait_until() -> Callable:
    """Await until predicate() is true, failing after timeout seconds."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Timed out waiting for condition")
            await asyncio.sleep(0.01)

    return _wait_until

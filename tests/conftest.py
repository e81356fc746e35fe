"""Shared fixtures for the validation engine tests."""

import logging
import random

import pytest
import structlog
from fastapi.testclient import TestClient

from covervote.api.app import create_app
from covervote.engine import Engine
from covervote.models import Config
from covervote.repositories import (
    InMemoryReviewerRepository,
    InMemorySongRepository,
    Repositories,
    SQLiteDatabase,
    SQLiteReviewerRepository,
    SQLiteSongRepository,
)

from factories import REVIEWERS, FakeClock


ENV_VARS = (
    "COVERVOTE_STORE_BACKEND",
    "COVERVOTE_DB_PATH",
    "COVERVOTE_REVIEWERS",
    "COVERVOTE_QUOTA",
    "COVERVOTE_PORT",
    "COVERVOTE_HOST",
    "COVERVOTE_LOG_LEVEL",
    "COVERVOTE_LOG_FORMAT",
    "COVERVOTE_DEBUG",
    "PORT",
    "CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep the caller's environment and logging setup out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    root = logging.getLogger()
    before, level = set(root.handlers), root.level
    yield
    # Drop the handlers setup_logging installed; pytest manages its own
    for handler in root.handlers[:]:
        if handler not in before and type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def song_repo():
    return InMemorySongRepository()


@pytest.fixture
def reviewer_repo():
    return InMemoryReviewerRepository(REVIEWERS)


@pytest.fixture(params=["memory", "sqlite"])
def repositories(request, tmp_path):
    """Both store backends behind the same interface."""
    if request.param == "memory":
        repos = Repositories(songs=InMemorySongRepository(), reviewers=InMemoryReviewerRepository())
    else:
        database = SQLiteDatabase(str(tmp_path / "covervote.db"))
        repos = Repositories(
            songs=SQLiteSongRepository(database),
            reviewers=SQLiteReviewerRepository(database),
            database=database,
        )
    yield repos
    repos.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def engine(song_repo, reviewer_repo, config, clock):
    return Engine(
        Repositories(songs=song_repo, reviewers=reviewer_repo),
        config,
        rng=random.Random(42),
        clock=clock,
    )


@pytest.fixture
def client(engine):
    app = create_app(engine=engine)
    with TestClient(app) as test_client:
        yield test_client

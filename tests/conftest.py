from __future__ import annotations

import asyncio
import inspect
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from mixtape.application import create_app
from mixtape.config import Settings
from mixtape.seed import seed_user


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None
    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None
    fixtureinfo = getattr(pyfuncitem, "_fixtureinfo", None)
    if fixtureinfo is None:
        return None
    kwargs = {name: pyfuncitem.funcargs[name] for name in fixtureinfo.argnames}
    asyncio.run(test_func(**kwargs))
    return True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    data_dir = tmp_path / "server-data"
    return Settings(
        DATA_DIR=data_dir,
        UPLOAD_DIR=data_dir / "uploads",
        SCRATCH_DIR=data_dir / "scratch",
        DATABASE_URL=f"sqlite:///{data_dir / 'mixtape.db'}",
        STREAM_CHUNK_SIZE=1000,
    )


@pytest.fixture
def app(settings: Settings):
    application = create_app(settings)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as instance:
        yield instance


@pytest.fixture
def user_id(app) -> int:
    db = app.state.session_factory()
    try:
        return seed_user(db, "seeduser@example.com", "Seed User").id
    finally:
        db.close()


@pytest.fixture
def audio_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "audio"
    directory.mkdir()
    return directory

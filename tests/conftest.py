import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from linkbio.adapters.sqlite.migrator import SQLiteMigrator
from linkbio.context import ServiceContext
from linkbio.rules.loader import load_rules
from linkbio.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def rules_path() -> Path:
    path = PROJECT_ROOT / "rules.yaml"
    if not path.exists():
        raise FileNotFoundError(f"Rules not found at {path}")
    return path


@pytest.fixture
def rules(rules_path: Path) -> Rules:
    return load_rules(rules_path)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return os.path.join(str(tmp_path), "linkbio.db")


@pytest.fixture
def sqlite_ctx(db_path: str, rules: Rules, clock: FixedClock) -> ServiceContext:
    """
    Creates a full ServiceContext backed by a migrated temporary SQLite DB,
    with the presets from rules.yaml seeded.
    """
    SQLiteMigrator(db_path).run_migrations()
    ctx = ServiceContext.create(db_path, rules, clock=clock)
    ctx.seed_presets()
    return ctx


@pytest.fixture
def memory_ctx(rules: Rules, clock: FixedClock) -> ServiceContext:
    ctx = ServiceContext.create_in_memory(rules, clock=clock)
    ctx.seed_presets()
    return ctx


@pytest.fixture(params=["sqlite", "memory"])
def test_ctx(request: pytest.FixtureRequest) -> ServiceContext:
    """Runs the test once per storage backend."""
    return request.getfixturevalue(f"{request.param}_ctx")

"""Pytest configuration and fixtures for code-reference-optimizer tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from code_reference_optimizer.config.settings import CacheSettings, Settings
from code_reference_optimizer.models.context import CodeContext
from code_reference_optimizer.parsers.python import PythonImportAnalyzer, PythonSourceParser
from code_reference_optimizer.services.diff_engine import DiffEngine
from code_reference_optimizer.services.optimizer_service import OptimizerService
from code_reference_optimizer.services.relevance_cache import RelevanceCache
from code_reference_optimizer.services.snapshot_store import SnapshotStore

SAMPLE_SOURCE = '''"""Sample module."""

import os
from typing import Any, Optional

__all__ = ["helper", "Greeter"]

DEFAULT_NAME = "world"


def helper(value: Any) -> str:
    return str(value)


class Greeter:
    def greet(self, name: str = DEFAULT_NAME) -> str:
        return helper(f"hello {name}")


def _private():
    return os.getcwd()
'''


class FakeClock:
    """Controllable clock for cache tests."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def test_settings() -> Settings:
    """Test configuration settings."""
    return Settings(
        cache=CacheSettings(
            max_size_bytes=1000,
            max_entries=5,
            max_tokens_per_entry=100,
            expiration_seconds=3600,
            relevance_threshold=0.5,
            eviction_policy="lru",
        ),
        log_level="INFO",
        extraction={"max_tokens": 100},
    )


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at the current time."""
    return FakeClock()


@pytest.fixture
def make_context(clock: FakeClock):
    """Factory for contexts timestamped by the fake clock."""

    def _make(
        file_path: str = "src/app.py",
        code: str = "x" * 100,
        relevance: float = 1.0,
        symbols: list[str] | None = None,
    ) -> CodeContext:
        return CodeContext.build(
            file_path,
            code,
            symbols=symbols or [],
            relevance_score=relevance,
            timestamp=clock.now,
        )

    return _make


@pytest.fixture
def cache(test_settings: Settings, clock: FakeClock) -> RelevanceCache:
    """Relevance cache driven by the fake clock."""
    return RelevanceCache(test_settings.cache, clock=clock)


@pytest.fixture
def diff_engine() -> DiffEngine:
    """Diff engine."""
    return DiffEngine()


@pytest.fixture
def snapshot_store(diff_engine: DiffEngine) -> SnapshotStore:
    """Snapshot store."""
    return SnapshotStore(diff_engine)


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    """Python source file on disk."""
    path = tmp_path / "sample.py"
    path.write_text(SAMPLE_SOURCE, encoding="utf-8")
    return path


@pytest_asyncio.fixture
async def optimizer_service(test_settings: Settings) -> OptimizerService:
    """Optimizer service with Python collaborators and a real-time cache."""
    return OptimizerService(
        parser=PythonSourceParser(max_file_size=test_settings.performance.max_file_size),
        import_analyzer=PythonImportAnalyzer(),
        cache=RelevanceCache(test_settings.cache),
        snapshots=SnapshotStore(),
        settings=test_settings,
    )

"""Pytest configuration and fixtures for tabular_db tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import structlog
from prometheus_client import CollectorRegistry

from tabular_db.adapters.inbound.sql_parser import SQLParser
from tabular_db.application.database_engine import DatabaseEngine
from tabular_db.application.executor import QueryExecutor
from tabular_db.infrastructure.config import Config, StorageConfig
from tabular_db.infrastructure.metrics import MetricsRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any logging setup a test (e.g. a CLI callback) performed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fixtures_dir() -> Path:
    """Directory holding the SQL tutorial scripts."""
    return FIXTURES_DIR


@pytest.fixture
def test_config() -> Config:
    """Provide an in-memory test configuration (no snapshot file)."""
    return Config(storage=StorageConfig(data_file=None))


@pytest.fixture
def snapshot_config(temp_dir: Path) -> Config:
    """Provide a configuration that snapshots into a temporary directory."""
    return Config(storage=StorageConfig(data_file=temp_dir / "catalog.json"))


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def parser() -> SQLParser:
    """Create a SQL parser for testing."""
    return SQLParser()


@pytest.fixture
def executor() -> QueryExecutor:
    """Create a query executor over an empty registry."""
    return QueryExecutor()


@pytest.fixture
def engine(
    test_config: Config, metrics_registry: MetricsRegistry
) -> Generator[DatabaseEngine, None, None]:
    """Provide a started in-memory engine."""
    with DatabaseEngine(config=test_config, metrics=metrics_registry) as db:
        yield db


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")

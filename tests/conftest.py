"""Pytest configuration and shared fixtures."""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from mealcart.database import Base, get_db
from mealcart.normalize.parser import parse_recipe
from mealcart.storage import PlanRepository

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "api: marks tests that exercise the HTTP API")


# =============================================================================
# Recipe Fixtures
# =============================================================================

PANCAKES = """\
title: Pancakes
1 cup flour
2 tbsp sugar
2 eggs
"""

SCONES = """\
title: Scones
1/2 cup flour
"""

PLAN_DATE = date(2024, 3, 4)


@pytest.fixture
def plan_date():
    """The date most tests plan for."""
    return PLAN_DATE


@pytest.fixture
def pancakes_text():
    return PANCAKES


@pytest.fixture
def scones_text():
    return SCONES


@pytest.fixture
def pancakes():
    """Parsed pancakes recipe: flour, sugar and eggs."""
    return parse_recipe(PANCAKES, "pancakes").recipe


@pytest.fixture
def scones():
    """Parsed scones recipe: half a cup of flour."""
    return parse_recipe(SCONES, "scones").recipe


# =============================================================================
# SQLite Test Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite engine shared across threads.

    Creates all tables and drops them after each test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session(test_db_engine):
    """Create a test database session."""
    with Session(test_db_engine) as session:
        yield session


@pytest.fixture
def repository(test_session):
    return PlanRepository(test_session)


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def client(test_db_engine):
    """Test client whose requests use the in-memory database."""
    from mealcart.main import app

    def override_get_db():
        with Session(test_db_engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

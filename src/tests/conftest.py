"""Pytest configuration and fixtures for service layer tests."""

from decimal import Decimal

import pytest
from sqlalchemy.orm import scoped_session, sessionmaker

from src.models.base import Base
from src.services.database import create_database_engine
from src.utils.config import Config, reset_config, set_config


@pytest.fixture(autouse=True)
def test_config():
    """Install an in-memory configuration so no data directory is touched."""
    config = Config(database_url="sqlite:///:memory:")
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    engine = create_database_engine("sqlite:///:memory:")

    # Create all tables
    Base.metadata.create_all(engine)

    # Create session factory
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    # Provide database to test
    yield Session

    # Cleanup
    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    # Restore original session factory
    db_module.get_session_factory = original_get_session


@pytest.fixture
def store_dump(test_db):
    """Return a function that dumps every table's rows, for before/after comparison."""

    def _dump():
        session = test_db()
        try:
            return {
                table.name: sorted(
                    (tuple(row) for row in session.execute(table.select()).all()),
                    key=repr,
                )
                for table in Base.metadata.sorted_tables
            }
        finally:
            session.close()

    return _dump


@pytest.fixture
def bottle(test_db):
    """Bottle: 100 pieces at 0.50."""
    from src.services import material_service

    return material_service.create_material(
        "Bottle", "piece", unit_price=Decimal("0.50"), initial_stock=100
    )


@pytest.fixture
def cap(test_db):
    """Cap: 100 pieces at 0.10."""
    from src.services import material_service

    return material_service.create_material(
        "Cap", "piece", unit_price=Decimal("0.10"), initial_stock=100
    )


@pytest.fixture
def label(test_db):
    """Label: 20 sheets at 0.20."""
    from src.services import material_service

    return material_service.create_material(
        "Label", "sheet", unit_price=Decimal("0.20"), initial_stock=20
    )


@pytest.fixture
def water(test_db, bottle, cap, label):
    """Water 500ml: 1 bottle, 1 cap, 0.5 label per unit; sells at 2.00.

    One unit costs 0.50 + 0.10 + 0.10 = 0.70.
    """
    from src.services import product_service

    return product_service.create_product(
        "Water 500ml",
        Decimal("2.00"),
        [
            {"material_id": bottle["id"], "quantity": 1},
            {"material_id": cap["id"], "quantity": 1},
            {"material_id": label["id"], "quantity": Decimal("0.5")},
        ],
    )

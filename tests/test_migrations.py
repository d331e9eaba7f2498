from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from divebook.settings import settings

ROOT = Path(__file__).resolve().parents[1]


def test_alembic_upgrade_head(tmp_path):
    db_path = tmp_path / "test.db"
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    original_database_url = settings.database_url
    try:
        settings.database_url = f"sqlite+aiosqlite:///{db_path}"
        command.upgrade(config, "head")
    finally:
        settings.database_url = original_database_url

    engine = create_engine(f"sqlite:///{db_path}")
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    assert {"profiles", "centers", "center_members", "services", "blocked_dates"} <= tables
    assert {"bookings", "transactions", "platform_config"} <= tables

    booking_indexes = {index["name"]: index for index in inspector.get_indexes("bookings")}
    assert booking_indexes["uq_bookings_active_slot"]["unique"]
    transaction_indexes = {index["name"]: index for index in inspector.get_indexes("transactions")}
    assert transaction_indexes["uq_transactions_payment_intent"]["unique"]
    engine.dispose()

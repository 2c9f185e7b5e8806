"""Contract tests: the Alembic migrations build the schema the models expect."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from src.models import Base

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def alembic_config(tmp_path):
    db_path = tmp_path / "migrated.db"
    config = Config(str(PROJECT_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(PROJECT_ROOT / "src" / "migrations"))
    config.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    config.attributes["configure_logger"] = False
    return config, db_path


def table_names(db_path: Path) -> set[str]:
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


class TestMigrations:
    def test_upgrade_creates_every_model_table(self, alembic_config):
        config, db_path = alembic_config

        command.upgrade(config, "head")

        assert set(Base.metadata.tables) <= table_names(db_path)

    def test_allocation_uniqueness_is_enforced(self, alembic_config):
        config, db_path = alembic_config

        command.upgrade(config, "head")

        engine = create_engine(f"sqlite:///{db_path}")
        try:
            constraints = inspect(engine).get_unique_constraints("utility_allocations")
        finally:
            engine.dispose()
        assert any(
            set(c["column_names"]) == {"utility_bill_id", "unit_id"} for c in constraints
        )

    def test_downgrade_removes_tables(self, alembic_config):
        config, db_path = alembic_config

        command.upgrade(config, "head")
        command.downgrade(config, "base")

        assert table_names(db_path) <= {"alembic_version"}

"""Tests for the Alembic migrations."""

import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from cowork_ledger.core.database import Base

VERSIONS_DIR = Path(__file__).resolve().parent.parent / "cowork_ledger" / "alembic" / "versions"


def _load_revisions():
    revisions = []
    for path in sorted(VERSIONS_DIR.glob("*.py")):
        spec = importlib.util.spec_from_file_location(path.stem, path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        revisions.append(module)
    return revisions


def _run(engine, step: str) -> None:
    revisions = _load_revisions()
    if step == "downgrade":
        revisions.reverse()
    with engine.begin() as conn:
        context = MigrationContext.configure(conn)
        with Operations.context(context):
            for revision in revisions:
                getattr(revision, step)()


class TestMigrations:
    def test_revisions_form_a_single_chain(self):
        revisions = _load_revisions()
        heads = {r.revision for r in revisions} - {r.down_revision for r in revisions}
        assert len(heads) == 1
        assert sum(1 for r in revisions if r.down_revision is None) == 1

    def test_upgrade_creates_the_model_tables(self):
        engine = create_engine("sqlite://")
        _run(engine, "upgrade")

        inspector = inspect(engine)
        assert set(inspector.get_table_names()) == set(Base.metadata.tables)
        for name, table in Base.metadata.tables.items():
            migrated = {c["name"] for c in inspector.get_columns(name)}
            assert migrated == {c.name for c in table.columns}, name

    def test_downgrade_drops_everything(self):
        engine = create_engine("sqlite://")
        _run(engine, "upgrade")
        _run(engine, "downgrade")

        assert inspect(engine).get_table_names() == []

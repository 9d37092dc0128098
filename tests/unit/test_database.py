"""
Unit tests for engine construction.
"""
import uuid

from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from filingdesk.config import Settings
from filingdesk.database import Base, build_engine
from filingdesk.models.filing import Filing


class TestBuildEngine:
    """Tests for build_engine()."""

    def test_in_memory_sqlite_shares_one_connection(self):
        engine = build_engine(Settings(_env_file=None, database_url="sqlite://"))

        assert isinstance(engine.pool, StaticPool)

    def test_file_sqlite_uses_regular_pool(self, tmp_path):
        engine = build_engine(Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'filings.db'}"))

        assert not isinstance(engine.pool, StaticPool)

    def test_uuid_primary_key_round_trips(self):
        """Test filing ids come back as UUID objects on SQLite."""
        engine = build_engine(Settings(_env_file=None, database_url="sqlite://"))
        Base.metadata.create_all(bind=engine)

        assert "filings" in inspect(engine).get_table_names()
        with engine.connect() as conn:
            filing_id = uuid.uuid4()
            conn.execute(Filing.__table__.insert().values(
                id=filing_id,
                shipment_id="SHP1",
                invoice_no="INV1",
                port="MUM",
                declared_value=100,
                status="Submitted",
            ))
            stored = conn.execute(Filing.__table__.select()).one()

        assert stored.id == filing_id

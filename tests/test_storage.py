"""Tests for state storage, backups and the ledger session."""

import asyncio
import json
from datetime import date
from decimal import Decimal

import pytest

from lumena.ledger import LedgerEngine
from lumena.models import AuditEventType, BucketCategory
from lumena.orchestrator import LedgerSession
from lumena.services.storage import (
    CorruptStateError,
    InMemoryStateStorage,
    JsonFileStateStorage,
    StorageError,
    backup_filename,
    write_backup,
)


KEY = "lumena-finance-data"


class TestInMemoryStorage:
    """Tests for InMemoryStateStorage."""

    def test_missing_key(self):
        assert asyncio.run(InMemoryStateStorage().load_state(KEY)) is None

    def test_documents_are_copied(self):
        storage = InMemoryStateStorage()
        document = {"buckets": []}
        asyncio.run(storage.save_state(KEY, document))
        document["buckets"].append("mutated")
        assert asyncio.run(storage.load_state(KEY)) == {"buckets": []}

    def test_delete(self):
        storage = InMemoryStateStorage({KEY: {}})
        assert asyncio.run(storage.delete_state(KEY)) is True
        assert asyncio.run(storage.delete_state(KEY)) is False


class TestJsonFileStorage:
    """Tests for JsonFileStateStorage."""

    def test_round_trip(self, tmp_path):
        storage = JsonFileStateStorage(tmp_path)
        document = {"buckets": [], "safetyMargin": "10.00"}

        asyncio.run(storage.save_state(KEY, document))

        assert (tmp_path / f"{KEY}.json").exists()
        assert not (tmp_path / f"{KEY}.json.tmp").exists()
        assert asyncio.run(storage.load_state(KEY)) == document

    def test_creates_data_dir(self, tmp_path):
        storage = JsonFileStateStorage(tmp_path / "nested" / "dir")
        asyncio.run(storage.save_state(KEY, {}))
        assert (tmp_path / "nested" / "dir" / f"{KEY}.json").exists()

    def test_missing_file(self, tmp_path):
        assert asyncio.run(JsonFileStateStorage(tmp_path).load_state(KEY)) is None

    def test_invalid_json(self, tmp_path):
        (tmp_path / f"{KEY}.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(CorruptStateError):
            asyncio.run(JsonFileStateStorage(tmp_path).load_state(KEY))

    def test_non_object_document(self, tmp_path):
        (tmp_path / f"{KEY}.json").write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(CorruptStateError, match="JSON object"):
            asyncio.run(JsonFileStateStorage(tmp_path).load_state(KEY))

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", ".."])
    def test_rejects_unsafe_keys(self, tmp_path, key):
        with pytest.raises(StorageError):
            JsonFileStateStorage(tmp_path).path_for(key)

    def test_delete(self, tmp_path):
        storage = JsonFileStateStorage(tmp_path)
        asyncio.run(storage.save_state(KEY, {}))
        assert asyncio.run(storage.delete_state(KEY)) is True
        assert asyncio.run(storage.delete_state(KEY)) is False


class TestBackup:
    """Tests for backup export."""

    def test_filename(self):
        assert backup_filename(date(2024, 3, 9)) == "lumena_backup_2024-03-09.json"

    def test_write_backup(self, tmp_path):
        document = {"buckets": [], "transactions": []}
        path = write_backup(document, tmp_path / "backups", on=date(2024, 3, 9))

        assert path.name == "lumena_backup_2024-03-09.json"
        text = path.read_text(encoding="utf-8")
        assert text.startswith('{\n  "buckets"')
        assert json.loads(text) == document


class TestLedgerSession:
    """Tests for the open / save / reset lifecycle."""

    def make_session(self, storage, audit_logger, tmp_path):
        return LedgerSession(
            storage=storage,
            engine=LedgerEngine(audit_logger=audit_logger),
            audit_logger=audit_logger,
            state_key=KEY,
            backup_dir=tmp_path / "backups",
        )

    def test_open_without_saved_state(self, audit_logger, audit_events, tmp_path):
        session = self.make_session(InMemoryStateStorage(), audit_logger, tmp_path)
        engine = asyncio.run(session.open())

        assert engine.list_buckets() == []
        loaded = [e for e in audit_events if e.event_type == AuditEventType.STATE_LOADED]
        assert loaded[-1].details["found"] is False

    def test_save_and_reopen(self, audit_logger, tmp_path):
        storage = JsonFileStateStorage(tmp_path / "data")
        session = self.make_session(storage, audit_logger, tmp_path)
        asyncio.run(session.open())

        bucket = session.engine.add_bucket("Play", BucketCategory.PLAY)
        session.engine.record_income(25, "Gift", "2024-01-01", {bucket.id: 25})
        asyncio.run(session.save())

        reopened = self.make_session(storage, audit_logger, tmp_path)
        engine = asyncio.run(reopened.open())
        assert engine.get_bucket(bucket.id).balance == Decimal("25.00")
        assert len(engine.ledger.transactions) == 1

    def test_open_corrupt_document(self, audit_logger, audit_events, tmp_path):
        storage = InMemoryStateStorage({KEY: {"buckets": [{"name": "No category"}]}})
        session = self.make_session(storage, audit_logger, tmp_path)

        with pytest.raises(CorruptStateError):
            asyncio.run(session.open())
        assert any(e.event_type == AuditEventType.STORAGE_ERROR for e in audit_events)

    def test_open_out_of_range_amount(self, audit_logger, tmp_path):
        storage = InMemoryStateStorage({KEY: {
            "buckets": [{"id": "b1", "name": "Play", "category": "Play", "balance": "1e30"}],
        }})
        session = self.make_session(storage, audit_logger, tmp_path)

        with pytest.raises(CorruptStateError):
            asyncio.run(session.open())

    def test_open_legacy_document(self, audit_logger, tmp_path):
        storage = InMemoryStateStorage({KEY: {
            "buckets": [{"id": "b1", "name": "Play", "category": "Play", "amount": 1000, "percentage": 100}],
            "transactions": [{
                "id": "1712345678901", "type": "income", "amount": 1000,
                "date": "2024-01-01", "description": "Salary", "bucketId": "b1",
            }],
            "unallocatedIncome": 0,
            "safetyMargin": 0,
            "isOnboardingComplete": True,
        }})
        session = self.make_session(storage, audit_logger, tmp_path)

        engine = asyncio.run(session.open())

        income = engine.find_transaction("1712345678901")
        assert income.allocations == {"b1": Decimal("1000.00")}
        engine.delete_transaction(income.id)
        assert engine.get_bucket("b1").balance == Decimal("0.00")

    def test_reset_persists_empty_ledger(self, audit_logger, tmp_path):
        storage = InMemoryStateStorage()
        session = self.make_session(storage, audit_logger, tmp_path)
        asyncio.run(session.open())
        session.engine.add_bucket("Play", BucketCategory.PLAY)
        asyncio.run(session.save())

        asyncio.run(session.reset())

        stored = asyncio.run(storage.load_state(KEY))
        assert stored["buckets"] == []
        assert stored["isOnboardingComplete"] is False

    def test_export_backup(self, audit_logger, tmp_path):
        session = self.make_session(InMemoryStateStorage(), audit_logger, tmp_path)
        asyncio.run(session.open())
        session.engine.set_safety_margin(800)

        path = session.export_backup(on=date(2024, 5, 1))

        assert path == tmp_path / "backups" / "lumena_backup_2024-05-01.json"
        assert json.loads(path.read_text(encoding="utf-8"))["safetyMargin"] == "800.00"

    def test_backup_download_payload(self, audit_logger, tmp_path):
        session = self.make_session(InMemoryStateStorage(), audit_logger, tmp_path)
        filename, contents = session.backup(on=date(2024, 5, 1))
        assert filename == "lumena_backup_2024-05-01.json"
        assert json.loads(contents)["transactions"] == []

"""
Unit tests for QueueStore persistence.
"""

import json
import os
from datetime import datetime, timezone

from brief_measure.delivery import QueueStore
from brief_measure.delivery.store import atomic_write
from brief_measure.models import QueuedObservation


def _record(digit="1", **kw):
    return QueuedObservation(observation=digit * 10, **kw)


def test_load_missing_file_is_empty(tmp_path):
    assert QueueStore(tmp_path / "nope.json").load() == []


def test_save_and_load_preserves_order(tmp_path):
    store = QueueStore.in_dir(tmp_path)
    records = [_record(d) for d in "1234"]

    assert store.save(records)
    loaded = store.load()

    assert [r.id for r in loaded] == [r.id for r in records]
    assert loaded == records


def test_persisted_format(tmp_path):
    """JSON array of {id, externalId, observation, createdAt}."""
    store = QueueStore.in_dir(tmp_path)
    created = datetime(2026, 10, 16, 7, 30, tzinfo=timezone.utc)
    record = _record("3", created_at=created)
    store.save([record])

    doc = json.loads(store.path.read_text())
    assert isinstance(doc, list)
    assert set(doc[0]) == {"id", "externalId", "observation", "createdAt"}
    assert doc[0]["externalId"] == record.external_id
    assert doc[0]["observation"] == "3333333333"
    assert datetime.fromisoformat(doc[0]["createdAt"].replace("Z", "+00:00")) == created


def test_corrupt_file_is_empty_not_fatal(tmp_path):
    store = QueueStore.in_dir(tmp_path)
    store.path.write_text('[{"id": "x", "externalId": ')
    assert store.load() == []

    store.path.write_text('{"not": "a list"}')
    assert store.load() == []

    store.path.write_text('[{"id": "x", "externalId": "y", "observation": "15", "createdAt": "2026-01-01T00:00:00Z"}]')
    assert store.load() == []


def test_legacy_uuidv7_key_is_accepted(tmp_path):
    store = QueueStore.in_dir(tmp_path)
    store.path.write_text(
        json.dumps(
            [
                {
                    "id": "5C0E5B0A-1B7B-4F3A-9C43-0D3B1B7E6B10",
                    "uuidv7": "01927a1e-8f00-7abc-8def-0123456789ab",
                    "observation": "1212121212",
                    "createdAt": "2026-10-16T07:00:00Z",
                }
            ]
        )
    )

    (record,) = store.load()
    assert record.external_id == "01927a1e-8f00-7abc-8def-0123456789ab"
    assert record.created_at.tzinfo is not None


def test_save_replaces_atomically_and_leaves_no_temp_files(tmp_path):
    store = QueueStore.in_dir(tmp_path)
    store.save([_record("1"), _record("2")])
    store.save([_record("4")])

    assert [r.observation for r in store.load()] == ["4444444444"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["observation-queue.json"]


def test_clear_writes_empty_document(tmp_path):
    store = QueueStore.in_dir(tmp_path)
    store.save([_record()])
    assert store.clear()
    assert json.loads(store.path.read_text()) == []


def test_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    store = QueueStore(blocker / "observation-queue.json")

    assert store.save([_record()]) is False
    assert store.load() == []


def test_atomic_write_sets_mode(tmp_path):
    target = tmp_path / "nested" / "secret"
    atomic_write(target, b"data", mode=0o600)

    assert target.read_bytes() == b"data"
    if os.name == "posix":
        assert target.stat().st_mode & 0o777 == 0o600

"""Tests for the file-backed :class:`JsonDraftStore`."""

from __future__ import annotations

import errno
import json
from datetime import date
from pathlib import Path

import pytest

from nestform.errors import PersistenceError, RecordNotFound, StaleDraftError
from nestform.models import ChildUpsert, CommitPayload
from nestform.persistence import DraftStore, JsonDraftStore, validate_record_id


@pytest.fixture()
def store(tmp_path: Path) -> JsonDraftStore:
    return JsonDraftStore(tmp_path / "store", durable_writes=False)


def _create(store: JsonDraftStore, *names: str):
    payload = CommitPayload(
        fields={"customer": "Acme", "ordered_on": date(2024, 5, 1)},
        children=[ChildUpsert(fields={"name": name}) for name in names],
    )
    return store.commit(payload)


def test_store_satisfies_protocol(store: JsonDraftStore) -> None:
    assert isinstance(store, DraftStore)


def test_commit_writes_one_document_per_record(store: JsonDraftStore) -> None:
    parent = _create(store, "Bolts", "Nuts")

    document = json.loads((store.records_dir / f"{parent.id}.json").read_text(encoding="utf-8"))

    assert document["version"] == 1
    assert document["fields"] == {"customer": "Acme", "ordered_on": "2024-05-01"}
    assert [child["id"] for child in document["children"]] == [1, 2]
    assert document["next_child_id"] == 3


def test_parent_ids_are_sequential(store: JsonDraftStore) -> None:
    first = _create(store)
    second = _create(store)

    assert (first.id, second.id) == (1, 2)
    assert json.loads((store.base_dir / "sequence.json").read_text(encoding="utf-8")) == {
        "next_parent_id": 3
    }


def test_update_reconciles_children_and_never_reuses_ids(store: JsonDraftStore) -> None:
    parent = _create(store, "Bolts", "Nuts")
    loaded = store.load(parent.id)
    bolts, _nuts = loaded.children

    updated = store.commit(
        CommitPayload(
            parent_id=parent.id,
            expected_version=loaded.parent.version,
            fields=loaded.parent.fields,
            children=[
                ChildUpsert(persisted_id=bolts.id, fields={"name": "Bolts M6"}),
                ChildUpsert(fields={"name": "Washers"}),
            ],
        )
    )
    reloaded = store.load(parent.id)

    assert updated.version == 2
    assert [(child.id, child.fields["name"]) for child in reloaded.children] == [
        (1, "Bolts M6"),
        (3, "Washers"),
    ]


def test_stale_version_is_rejected(store: JsonDraftStore) -> None:
    parent = _create(store)
    store.commit(CommitPayload(parent_id=parent.id, expected_version=1, fields={}))

    with pytest.raises(StaleDraftError):
        store.commit(CommitPayload(parent_id=parent.id, expected_version=1, fields={}))


def test_load_missing_and_invalid_ids(store: JsonDraftStore) -> None:
    with pytest.raises(RecordNotFound):
        store.load(41)
    with pytest.raises(RecordNotFound):
        store.load("../escape")


def test_malformed_document_is_a_persistence_error(store: JsonDraftStore) -> None:
    store.records_dir.mkdir(parents=True)
    (store.records_dir / "5.json").write_text("[1, 2]", encoding="utf-8")
    (store.records_dir / "6.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError, match="malformed"):
        store.load(5)
    with pytest.raises(PersistenceError):
        store.load(6)


def test_no_temp_files_left_behind(store: JsonDraftStore) -> None:
    _create(store, "Bolts")

    assert [path.name for path in store.records_dir.iterdir()] == ["1.json"]



def _leftover_temp_files(directory: Path) -> list[str]:
    return [path.name for path in directory.iterdir() if path.name.endswith(".tmp")]


def _fail_rename(monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(source: Path, target: Path, **_kwargs) -> None:
        raise OSError(errno.EIO, "I/O error", str(target))

    monkeypatch.setattr("nestform.persistence.atomic._rename_with_retry", refuse)


def test_corrupt_stored_version_is_a_persistence_error(store: JsonDraftStore) -> None:
    parent = _create(store, "Bolts")
    path = store.records_dir / f"{parent.id}.json"
    document = json.loads(path.read_text(encoding="utf-8"))
    document["version"] = "corrupt"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(PersistenceError, match="malformed"):
        store.commit(CommitPayload(parent_id=parent.id, expected_version=1, fields={"customer": "B"}))
    with pytest.raises(PersistenceError, match="malformed"):
        store.load(parent.id)


def test_corrupt_child_counter_is_a_persistence_error(store: JsonDraftStore) -> None:
    parent = _create(store, "Bolts")
    path = store.records_dir / f"{parent.id}.json"
    document = json.loads(path.read_text(encoding="utf-8"))
    document["next_child_id"] = "three"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(PersistenceError, match="malformed") as exc:
        store.commit(CommitPayload(parent_id=parent.id, fields={"customer": "B"}))

    assert exc.value.details["key"] == "next_child_id"


@pytest.mark.parametrize("content", ["[1]", "\"seven\"", "{\"next_parent_id\": \"x\"}"])
def test_malformed_sequence_file_is_a_persistence_error(store: JsonDraftStore, content: str) -> None:
    store.base_dir.mkdir(parents=True)
    (store.base_dir / "sequence.json").write_text(content, encoding="utf-8")

    with pytest.raises(PersistenceError, match="malformed"):
        _create(store, "Bolts")

    assert not store.records_dir.exists()


def test_failed_record_write_leaves_previous_version(
    store: JsonDraftStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    parent = _create(store, "Bolts")
    path = store.records_dir / f"{parent.id}.json"
    before = path.read_text(encoding="utf-8")
    _fail_rename(monkeypatch)

    with pytest.raises(PersistenceError, match="Failed to write record") as exc:
        store.commit(
            CommitPayload(parent_id=parent.id, expected_version=1, fields={"customer": "Changed"})
        )

    assert exc.value.details["parent_id"] == parent.id
    assert path.read_text(encoding="utf-8") == before
    assert store.load(parent.id).parent.version == 1
    assert _leftover_temp_files(store.records_dir) == []


def test_failed_sequence_write_creates_no_record(
    store: JsonDraftStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    _create(store)
    _fail_rename(monkeypatch)

    with pytest.raises(PersistenceError, match="Failed to update record sequence"):
        _create(store, "Bolts")

    assert sorted(path.name for path in store.records_dir.iterdir()) == ["1.json"]
    assert json.loads((store.base_dir / "sequence.json").read_text(encoding="utf-8")) == {
        "next_parent_id": 2
    }
    assert _leftover_temp_files(store.base_dir) == []


@pytest.mark.parametrize("value", ["", " 1", "..", "a/b", "bad\x00", True, 1.5])
def test_validate_record_id_rejects_unsafe_values(value) -> None:
    with pytest.raises(ValueError):
        validate_record_id(value)


def test_validate_record_id_accepts_plain_values() -> None:
    assert validate_record_id(12) == "12"
    assert validate_record_id("order-12") == "order-12"

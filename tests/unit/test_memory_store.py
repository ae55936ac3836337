"""Tests for :class:`nestform.persistence.InMemoryDraftStore`."""

from __future__ import annotations

import pytest

from nestform.errors import RecordNotFound, StaleDraftError
from nestform.models import ChildUpsert, CommitPayload
from nestform.persistence import DraftStore, InMemoryDraftStore


def test_store_satisfies_protocol(memory_store: InMemoryDraftStore) -> None:
    assert isinstance(memory_store, DraftStore)


def test_seed_and_load_return_independent_copies(memory_store: InMemoryDraftStore) -> None:
    seeded = memory_store.seed({"title": "Trip", "tags": ["a"]}, [{"name": "Tent"}])

    loaded = memory_store.load(seeded.parent.id)
    loaded.parent.fields["tags"].append("b")

    assert memory_store.load(seeded.parent.id).parent.fields["tags"] == ["a"]
    assert [child.fields for child in loaded.children] == [{"name": "Tent"}]


def test_load_unknown_record(memory_store: InMemoryDraftStore) -> None:
    with pytest.raises(RecordNotFound):
        memory_store.load(404)


def test_commit_new_record(memory_store: InMemoryDraftStore) -> None:
    payload = CommitPayload(fields={"title": "New"}, children=[ChildUpsert(fields={"name": "x"})])

    parent = memory_store.commit(payload)
    loaded = memory_store.load(parent.id)

    assert parent.version == 1
    assert loaded.parent.fields == {"title": "New"}
    assert [child.fields for child in loaded.children] == [{"name": "x"}]


def test_commit_replaces_child_collection(memory_store: InMemoryDraftStore) -> None:
    seeded = memory_store.seed({"title": "Trip"}, [{"name": "Tent"}, {"name": "Stove"}])
    tent, _stove = seeded.children
    payload = CommitPayload(
        parent_id=seeded.parent.id,
        expected_version=1,
        fields={"title": "Trip"},
        children=[
            ChildUpsert(persisted_id=tent.id, fields={"name": "Tent (2p)"}),
            ChildUpsert(fields={"name": "Lamp"}),
        ],
    )

    parent = memory_store.commit(payload)
    loaded = memory_store.load(seeded.parent.id)

    assert parent.version == 2
    assert [child.fields["name"] for child in loaded.children] == ["Tent (2p)", "Lamp"]
    assert loaded.children[0].id == tent.id
    assert loaded.children[1].id not in {child.id for child in seeded.children}


def test_commit_rejects_stale_version(memory_store: InMemoryDraftStore) -> None:
    seeded = memory_store.seed({"title": "Trip"})
    memory_store.commit(CommitPayload(parent_id=seeded.parent.id, expected_version=1, fields={}))

    with pytest.raises(StaleDraftError) as exc:
        memory_store.commit(CommitPayload(parent_id=seeded.parent.id, expected_version=1, fields={}))

    assert exc.value.details["current_version"] == 2


def test_failed_commit_leaves_record_untouched(memory_store: InMemoryDraftStore) -> None:
    seeded = memory_store.seed({"title": "Trip"}, [{"name": "Tent"}])
    payload = CommitPayload(
        parent_id=seeded.parent.id,
        expected_version=1,
        fields={"title": "Changed"},
        children=[ChildUpsert(persisted_id=999, fields={"name": "Ghost"})],
    )

    with pytest.raises(StaleDraftError):
        memory_store.commit(payload)

    assert memory_store.load(seeded.parent.id) == seeded


def test_commit_unknown_parent(memory_store: InMemoryDraftStore) -> None:
    with pytest.raises(RecordNotFound):
        memory_store.commit(CommitPayload(parent_id=77, fields={}))

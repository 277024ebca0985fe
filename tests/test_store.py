from __future__ import annotations

import json
import logging

import pytest

from projest.errors import StoreError
from projest.models import Estimation, Project
from projest.store import JsonStore


def test_save_assigns_id_and_persists(store, projects):
    saved = store.save("projects", Project(owner_id="u1", name="Fresh"))
    for project in projects:
        store.save("projects", project)

    assert saved.id
    reloaded = JsonStore(store.path)
    assert reloaded.fetch_by_id("projects", saved.id).name == "Fresh"
    assert reloaded.fetch_by_id("projects", "p2") == projects[1]


def test_fetch_all_by_owner_filters(store):
    store.save("estimations", {"id": "a", "owner_id": "u1", "finalCost": 10})
    store.save("estimations", {"id": "b", "owner_id": "u2", "finalCost": 20})

    assert [e.id for e in store.fetch_all_by_owner("estimations", "u1")] == ["a"]
    assert sorted(e.id for e in store.fetch_all_by_owner("estimations", None)) == ["a", "b"]
    assert all(isinstance(e, Estimation) for e in store.fetch_all_by_owner("estimations", None))


def test_last_writer_wins(store):
    store.save("estimations", Estimation(id="e1", final_cost=100))
    store.save("estimations", Estimation(id="e1", final_cost=250))

    assert store.fetch_by_id("estimations", "e1").final_cost == 250
    assert len(store.fetch_all_by_owner("estimations", None)) == 1


def test_delete(store):
    store.save("projects", Project(id="p1"))

    assert store.delete("projects", "p1") is True
    assert store.delete("projects", "p1") is False
    assert store.fetch_by_id("projects", "p1") is None


def test_in_memory_store_writes_nothing(tmp_path):
    memory = JsonStore()
    memory.save("projects", Project(id="p1"))

    assert memory.fetch_by_id("projects", "p1") is not None
    assert list(tmp_path.iterdir()) == []


def test_unknown_collection(store):
    with pytest.raises(StoreError):
        store.fetch_all_by_owner("invoices", None)


def test_corrupt_store_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreError):
        JsonStore(path)


def test_store_file_layout(store):
    store.save("projects", Project(id="p1", name="Portal"))

    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert set(raw) == {"projects", "estimations", "team_members", "resources"}
    assert raw["projects"]["p1"]["name"] == "Portal"


def test_replacing_a_record_is_logged(store, caplog):
    caplog.set_level(logging.DEBUG, logger="projest.store")
    store.save("projects", Project(id="p1", name="First"))

    store.save("projects", Project(id="p1", name="Second"))

    assert "Replacing projects/p1" in caplog.text

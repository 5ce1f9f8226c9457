"""Tests for the instances.json resource store."""

import json

import pytest

from devbox.errors import ConfigError
from devbox.provisioning.store import ResourceStore
from devbox.provisioning.types import ResourceRecord, ResourceStatus


def _record(label, created_at, status=ResourceStatus.REQUESTED):
    return ResourceRecord(label=label, region="ewr", plan="vc2-1c-1gb", image="ubuntu-24.04", status=status, created_at=created_at)


def test_save_and_get(tmp_path):
    store = ResourceStore(str(tmp_path / "state" / "instances.json"))
    record = _record("tiny-box-1", 100.0, ResourceStatus.ACTIVE)

    store.save(record)

    assert store.get("tiny-box-1") == record


def test_save_overwrites_same_label(tmp_path):
    store = ResourceStore(str(tmp_path / "instances.json"))
    record = _record("tiny-box-1", 100.0)
    store.save(record)

    record.status = ResourceStatus.UNREACHABLE
    store.save(record)

    assert store.get("tiny-box-1").status == ResourceStatus.UNREACHABLE
    assert len(store.all()) == 1


def test_all_sorted_by_creation(tmp_path):
    store = ResourceStore(str(tmp_path / "instances.json"))
    store.save(_record("b", 200.0))
    store.save(_record("a", 100.0))

    assert [r.label for r in store.all()] == ["a", "b"]


def test_all_empty_when_missing(tmp_path):
    assert ResourceStore(str(tmp_path / "instances.json")).all() == []


def test_get_unknown_label(tmp_path):
    store = ResourceStore(str(tmp_path / "instances.json"))

    with pytest.raises(ConfigError, match="No instance 'nope'"):
        store.get("nope")


def test_corrupt_state_file(tmp_path):
    path = tmp_path / "instances.json"
    path.write_text("{not json")

    with pytest.raises(ConfigError, match="Cannot read instance state"):
        ResourceStore(str(path)).all()


def test_save_leaves_no_temp_files(tmp_path):
    store = ResourceStore(str(tmp_path / "instances.json"))
    store.save(_record("tiny-box-1", 100.0))

    assert [p.name for p in tmp_path.iterdir()] == ["instances.json"]
    assert json.loads((tmp_path / "instances.json").read_text())["tiny-box-1"]["status"] == "requested"


def test_save_dry_run(tmp_path):
    store = ResourceStore(str(tmp_path / "instances.json"))
    store.save(_record("tiny-box-1", 100.0), dry_run=True)

    assert not (tmp_path / "instances.json").exists()


def test_contains(tmp_path):
    store = ResourceStore(str(tmp_path / "instances.json"))
    assert "tiny-box-1" not in store

    store.save(_record("tiny-box-1", 100.0))

    assert "tiny-box-1" in store
    assert "tiny-box-2" not in store

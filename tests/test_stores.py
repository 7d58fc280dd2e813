import json
from pathlib import Path

import pytest

from harvester.errors import PersistenceError
from harvester.resilience import FailureLedger, FrontierStore, VisitedLedger
from harvester.resilience.json_store import read_document, write_document


def test_write_document_replaces_atomically(tmp_path: Path) -> None:
    path = tmp_path / "state" / "doc.json"

    write_document(path, {'a': 1})
    write_document(path, {'a': 2})

    assert json.loads(path.read_text()) == {'a': 2}
    assert not (tmp_path / "state" / "doc.tmp.json").exists()


def test_write_document_unserializable_raises(tmp_path: Path) -> None:
    path = tmp_path / "doc.json"
    write_document(path, {'a': 1})

    with pytest.raises(PersistenceError):
        write_document(path, {'a': object()})

    assert json.loads(path.read_text()) == {'a': 1}
    assert not (tmp_path / "doc.tmp.json").exists()


def test_read_document_backs_up_corrupted_file(tmp_path: Path) -> None:
    path = tmp_path / "frontier.json"
    path.write_text("{not json")

    assert read_document(path) is None
    backups = list(tmp_path.glob("frontier.corrupted.*.json"))
    assert len(backups) == 1


def test_read_document_missing_returns_none(tmp_path: Path) -> None:
    assert read_document(tmp_path / "absent.json") is None


def test_frontier_append_is_idempotent(tmp_path: Path) -> None:
    frontier = FrontierStore(tmp_path)

    assert frontier.append(["u1", "u2", "u1"]) == 2
    assert frontier.append(["u2", "u3"]) == 1
    assert frontier.load() == ["u1", "u2", "u3"]

    reloaded = FrontierStore(tmp_path)
    assert reloaded.load() == ["u1", "u2", "u3"]
    assert "u3" in reloaded
    assert len(reloaded) == 3


def test_frontier_append_order_does_not_change_membership(tmp_path: Path) -> None:
    batches = [["u1", "u2"], ["u3", "u1"], ["u4"]]
    forward = FrontierStore(tmp_path / "forward")
    backward = FrontierStore(tmp_path / "backward")

    for batch in batches + batches:
        forward.append(batch)
    for batch in list(reversed(batches)) * 2:
        backward.append(batch)

    expected = {"u1", "u2", "u3", "u4"}
    assert set(FrontierStore(tmp_path / "forward").load()) == expected
    assert set(FrontierStore(tmp_path / "backward").load()) == expected
    assert len(FrontierStore(tmp_path / "backward")) == 4


def test_frontier_document_layout(tmp_path: Path) -> None:
    FrontierStore(tmp_path).append(["u1", "u2"])

    data = json.loads((tmp_path / "frontier.json").read_text())
    assert data['urls'] == ["u1", "u2"]
    assert data['total_count'] == 2
    assert data['last_updated']


def test_frontier_remove_and_reset(tmp_path: Path) -> None:
    frontier = FrontierStore(tmp_path)
    frontier.append(["u1", "u2"])

    frontier.remove("u1")
    assert frontier.load() == ["u2"]

    frontier.reset()
    assert FrontierStore(tmp_path).load() == []


def test_frontier_loads_duplicate_free_from_hand_edited_file(tmp_path: Path) -> None:
    (tmp_path / "frontier.json").write_text(json.dumps({'urls': ["a", "b", "a"]}))

    assert FrontierStore(tmp_path).load() == ["a", "b"]


def test_visited_mark_and_reload(tmp_path: Path) -> None:
    ledger = VisitedLedger(tmp_path)
    ledger.mark_visited("u1")
    ledger.mark_visited("u2", payload={'name': 'Jane'})

    reloaded = VisitedLedger(tmp_path)
    assert reloaded.contains("u1")
    assert reloaded.load_all() == {"u1", "u2"}
    assert reloaded.count() == 2
    assert 'payload' not in reloaded.get("u1")
    assert reloaded.get("u2")['payload'] == {'name': 'Jane'}


def test_visited_reads_legacy_list_format(tmp_path: Path) -> None:
    (tmp_path / "visited.json").write_text(json.dumps({'urls': ["u1", "u2"], 'last_updated': "x"}))

    ledger = VisitedLedger(tmp_path)

    assert ledger.load_all() == {"u1", "u2"}


def test_visited_reset(tmp_path: Path) -> None:
    ledger = VisitedLedger(tmp_path)
    ledger.mark_visited("u1")
    ledger.reset()

    assert VisitedLedger(tmp_path).count() == 0


def test_failure_attempts_accumulate(tmp_path: Path) -> None:
    ledger = FailureLedger(tmp_path)

    ledger.mark_failed("u1", ValueError("boom"))
    record = ledger.mark_failed("u1", TimeoutError())

    assert record.attempt_count == 2
    assert record.last_error == "TimeoutError"
    reloaded = FailureLedger(tmp_path)
    assert reloaded.get("u1").attempt_count == 2
    assert reloaded.count() == 1


def test_failure_exhausted(tmp_path: Path) -> None:
    ledger = FailureLedger(tmp_path)
    for _ in range(3):
        ledger.mark_failed("u1", "boom")
    ledger.mark_failed("u2", "boom")

    assert ledger.exhausted(3) == {"u1"}
    assert ledger.exhausted(1) == {"u1", "u2"}

    ledger.reset()
    assert FailureLedger(tmp_path).load_all() == {}

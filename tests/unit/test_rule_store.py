import itertools
import sqlite3
import threading
from pathlib import Path

import pytest

from rulecraft.memory import store as store_module
from rulecraft.memory.store import DuplicateRuleError, RuleStore, StoreError
from tests.util.factories import make_rule, make_store


@pytest.fixture
def ticking_clock(monkeypatch):
    """Make the store's clock advance by one second on every read."""
    ticks = itertools.count(1_700_000_000_000, 1000)
    monkeypatch.setattr(store_module, "_utc_ms", lambda: next(ticks))


def test_create_then_get_round_trip(tmp_path: Path, ticking_clock):
    rule = make_rule("dash", "Dash", subcategory="Actions", page=None)
    store = make_store(tmp_path)
    stored = store.create_rule(rule)
    fetched = store.get_rule("dash")
    assert fetched == stored
    assert fetched.model_dump(exclude={"created_at", "updated_at"}) == rule.model_dump(
        exclude={"created_at", "updated_at"}
    )
    assert fetched.created_at == fetched.updated_at > 0


def test_client_timestamps_are_overwritten(tmp_path: Path, ticking_clock):
    store = make_store(tmp_path)
    stored = store.create_rule(make_rule("dash", "Dash", created_at=5, updated_at=1))
    assert stored.created_at == stored.updated_at == 1_700_000_000_000


def test_get_missing_rule_returns_none(tmp_path: Path):
    assert make_store(tmp_path).get_rule("nope") is None


def test_create_duplicate_id_is_rejected(tmp_path: Path):
    store = make_store(tmp_path, make_rule("dash", "Dash"))
    with pytest.raises(DuplicateRuleError):
        store.create_rule(make_rule("dash", "Another Dash"))
    assert store.get_rule("dash").title == "Dash"
    assert store.count_rules() == 1


def test_list_orders_by_category_then_title(tmp_path: Path):
    store = make_store(
        tmp_path,
        make_rule("b", "Prone", category="Conditions"),
        make_rule("a", "Grapple", category="Combat"),
        make_rule("c", "Attack Action", category="Combat"),
        make_rule("d", "Blinded", category="Conditions"),
    )
    assert [r.id for r in store.list_rules()] == ["c", "a", "d", "b"]


def test_upsert_inserts_then_updates(tmp_path: Path, ticking_clock):
    store = make_store(tmp_path)
    rule = make_rule("dash", "Dash", content="Double your speed.")
    assert store.upsert_rule(rule) is True
    first = store.get_rule("dash")

    changed = rule.model_copy(update={"content": "Gain extra movement equal to your Speed."})
    assert store.upsert_rule(changed) is False
    second = store.get_rule("dash")
    assert second.content == "Gain extra movement equal to your Speed."
    assert second.created_at == first.created_at
    assert second.updated_at > first.updated_at
    assert store.count_rules() == 1


def test_upsert_same_values_is_idempotent(tmp_path: Path, ticking_clock):
    store = make_store(tmp_path)
    rule = make_rule("dash", "Dash")
    assert store.upsert_rule(rule) is True
    first = store.get_rule("dash")
    assert store.upsert_rule(rule) is False
    second = store.get_rule("dash")
    assert second.created_at == first.created_at
    assert second.model_dump(exclude={"updated_at"}) == first.model_dump(exclude={"updated_at"})
    assert second.updated_at >= second.created_at


def test_index_follows_updates(tmp_path: Path):
    store = make_store(tmp_path, make_rule("dash", "Dash", content="Double your speed."))
    assert [r.id for r in store.search_fts("speed", 20)] == ["dash"]

    store.upsert_rule(make_rule("dash", "Dash", content="Extra movement this turn."))
    assert store.search_fts("speed", 20) == []
    assert [r.id for r in store.search_fts("movement", 20)] == ["dash"]


def test_index_follows_deletes(tmp_path: Path):
    store = make_store(tmp_path, make_rule("dash", "Dash", content="Double your speed."))
    assert store.delete_rule("dash") is True
    assert store.delete_rule("dash") is False
    assert store.search_fts("speed", 20) == []
    assert store.search_fts("Dash", 20) == []


def test_index_entry_count_matches_records(tmp_path: Path):
    store = make_store(tmp_path, make_rule("a", "Dash"), make_rule("b", "Dodge"))
    store.upsert_rule(make_rule("a", "Dash", content="Changed."))
    store.delete_rule("b")
    con = sqlite3.connect(store.sqlite_path)
    try:
        # One docsize row per indexed document.
        docs = con.execute("SELECT COUNT(*) FROM rules_fts_docsize").fetchone()[0]
    finally:
        con.close()
    assert docs == store.count_rules() == 1


def test_malformed_match_raises_store_error(tmp_path: Path):
    store = make_store(tmp_path, make_rule("dash", "Dash"))
    with pytest.raises(StoreError):
        store.search_fts('"unterminated', 20)


def test_unreadable_database_raises_store_error(tmp_path: Path):
    bad = tmp_path / "not-a-db.db"
    bad.write_bytes(b"this is not a sqlite file" * 100)
    with pytest.raises(StoreError):
        RuleStore(sqlite_path=str(bad))


def test_concurrent_upserts_of_one_id_serialize(tmp_path: Path):
    store = make_store(tmp_path)
    workers = 16
    barrier = threading.Barrier(workers)
    outcomes: list[bool] = []
    errors: list[Exception] = []

    def upsert(i: int) -> None:
        barrier.wait()
        try:
            outcomes.append(store.upsert_rule(make_rule("same", "Same", content=f"v{i}")))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=upsert, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sorted(outcomes) == [False] * (workers - 1) + [True]
    assert store.count_rules() == 1
    assert store.get_rule("same").content in {f"v{i}" for i in range(workers)}


def test_other_constraint_failures_are_not_duplicates(tmp_path: Path):
    store = make_store(tmp_path)
    # Bypass validation so the NOT NULL constraint on title is what fails.
    broken = make_rule("dash", "Dash").model_copy(update={"title": None})
    with pytest.raises(StoreError) as exc:
        store.create_rule(broken)
    assert not isinstance(exc.value, DuplicateRuleError)
    assert store.count_rules() == 0


def test_match_rules_filters_by_case_folded_substring(tmp_path: Path):
    store = make_store(
        tmp_path,
        make_rule("a", "Attack Action", category="Combat", content="One attack."),
        make_rule("b", "Dash", category="Combat", content="Double your speed."),
        make_rule("c", "Help", category="Attack Options", content="Aid an ally."),
        make_rule("d", "Straße", category="Exploration", content="Travel."),
    )
    assert {r.id for r in store.match_rules("ATTACK")} == {"a", "c"}
    assert [r.id for r in store.match_rules("speed")] == ["b"]
    assert [r.id for r in store.match_rules("STRASSE")] == ["d"]
    assert store.match_rules("fireball") == []

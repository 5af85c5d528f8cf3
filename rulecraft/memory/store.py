from __future__ import annotations

import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from rulecraft.knowledge.models import Rule

log = structlog.get_logger(__name__)

_COLUMNS = "id, title, category, subcategory, content, source, page, created_at, updated_at"
_R_COLUMNS = ", ".join(f"r.{c}" for c in _COLUMNS.split(", "))


class StoreError(Exception):
    """The rules database could not be read or written."""


class DuplicateRuleError(StoreError):
    def __init__(self, rule_id: str):
        super().__init__(f"Rule with id '{rule_id}' already exists")
        self.rule_id = rule_id


def _utc_ms() -> int:
    return int(time.time() * 1000)


def _connect(sqlite_path: str) -> sqlite3.Connection:
    con = sqlite3.connect(sqlite_path, isolation_level="DEFERRED", check_same_thread=False)
    con.execute("PRAGMA journal_mode=WAL;")
    con.execute("PRAGMA foreign_keys=ON;")
    con.row_factory = sqlite3.Row
    con.create_function("casefold", 1, str.casefold, deterministic=True)
    return con


def _is_duplicate_id(error: BaseException | None) -> bool:
    return isinstance(error, sqlite3.IntegrityError) and (
        getattr(error, "sqlite_errorname", None) == "SQLITE_CONSTRAINT_PRIMARYKEY"
        or "UNIQUE constraint failed: rules.id" in str(error)
    )


def _row_to_rule(row: sqlite3.Row) -> Rule:
    return Rule(**dict(row))


class RuleStore:
    """
    Rule records plus the FTS5 index over them.

    The index is an external-content FTS5 table maintained by triggers, so it is
    written in the same transaction as the record and a committed write is never
    visible with a stale index entry.
    """

    def __init__(self, sqlite_path: str = ".data/rulecraft.db"):
        self.sqlite_path = sqlite_path
        Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        with self._session() as con:
            self._ensure_schema(con)
        log.info("store.ready", sqlite_path=sqlite_path)

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error, always close."""
        try:
            con = _connect(self.sqlite_path)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self.sqlite_path}: {e}") from e
        try:
            with con:
                yield con
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            con.close()

    def _ensure_schema(self, con: sqlite3.Connection) -> None:
        con.executescript(
            """
            CREATE TABLE IF NOT EXISTS rules (
                id TEXT PRIMARY KEY, title TEXT NOT NULL,
                category TEXT NOT NULL, subcategory TEXT,
                content TEXT NOT NULL, source TEXT NOT NULL,
                page INTEGER,
                created_at INTEGER NOT NULL, updated_at INTEGER NOT NULL
            );
            CREATE VIRTUAL TABLE IF NOT EXISTS rules_fts USING fts5(
                title, content, category,
                content='rules', content_rowid='rowid'
            );
            CREATE TRIGGER IF NOT EXISTS rules_ai AFTER INSERT ON rules BEGIN
                INSERT INTO rules_fts(rowid, title, content, category)
                VALUES (NEW.rowid, NEW.title, NEW.content, NEW.category);
            END;
            CREATE TRIGGER IF NOT EXISTS rules_ad AFTER DELETE ON rules BEGIN
                INSERT INTO rules_fts(rules_fts, rowid, title, content, category)
                VALUES ('delete', OLD.rowid, OLD.title, OLD.content, OLD.category);
            END;
            CREATE TRIGGER IF NOT EXISTS rules_au AFTER UPDATE ON rules BEGIN
                INSERT INTO rules_fts(rules_fts, rowid, title, content, category)
                VALUES ('delete', OLD.rowid, OLD.title, OLD.content, OLD.category);
                INSERT INTO rules_fts(rowid, title, content, category)
                VALUES (NEW.rowid, NEW.title, NEW.content, NEW.category);
            END;
            """
        )

    def list_rules(self) -> list[Rule]:
        with self._session() as con:
            rows = con.execute(
                f"SELECT {_COLUMNS} FROM rules ORDER BY category, title, id"
            ).fetchall()
            return [_row_to_rule(row) for row in rows]

    def match_rules(self, needle: str) -> list[Rule]:
        """Rules whose title, category or content contains `needle`, compared case-folded."""
        with self._session() as con:
            rows = con.execute(
                f"""
                SELECT {_COLUMNS} FROM rules
                WHERE instr(casefold(title), :needle) > 0
                   OR instr(casefold(category), :needle) > 0
                   OR instr(casefold(content), :needle) > 0
                """,
                {"needle": needle.casefold()},
            ).fetchall()
            return [_row_to_rule(row) for row in rows]

    def get_rule(self, rule_id: str) -> Rule | None:
        with self._session() as con:
            row = con.execute(f"SELECT {_COLUMNS} FROM rules WHERE id = ?", (rule_id,)).fetchone()
            return _row_to_rule(row) if row else None

    def count_rules(self) -> int:
        with self._session() as con:
            return con.execute("SELECT COUNT(*) FROM rules").fetchone()[0]

    def create_rule(self, rule: Rule) -> Rule:
        """Insert a new rule. Raises DuplicateRuleError if the id is taken."""
        now = _utc_ms()
        stored = rule.model_copy(update={"created_at": now, "updated_at": now})
        try:
            with self._session() as con:
                con.execute(
                    f"INSERT INTO rules ({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?)",
                    (
                        stored.id,
                        stored.title,
                        stored.category,
                        stored.subcategory,
                        stored.content,
                        stored.source,
                        stored.page,
                        stored.created_at,
                        stored.updated_at,
                    ),
                )
        except StoreError as e:
            if _is_duplicate_id(e.__cause__):
                raise DuplicateRuleError(rule.id) from e.__cause__
            raise
        log.info("store.rule_created", rule_id=stored.id)
        return stored

    def upsert_rule(self, rule: Rule) -> bool:
        """
        Insert the rule, or update every mutable field if the id exists.
        Returns True when the rule was newly inserted. created_at is kept on update.
        """
        now = _utc_ms()
        with self._session() as con:
            # Take the write lock before the existence check so that concurrent
            # upserts of one id serialize.
            con.execute("BEGIN IMMEDIATE")
            existed = (
                con.execute("SELECT 1 FROM rules WHERE id = ?", (rule.id,)).fetchone() is not None
            )
            con.execute(
                f"""
                INSERT INTO rules ({_COLUMNS}) VALUES (?,?,?,?,?,?,?,?,?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    category = excluded.category,
                    subcategory = excluded.subcategory,
                    content = excluded.content,
                    source = excluded.source,
                    page = excluded.page,
                    updated_at = MAX(excluded.updated_at, rules.created_at)
                """,
                (
                    rule.id,
                    rule.title,
                    rule.category,
                    rule.subcategory,
                    rule.content,
                    rule.source,
                    rule.page,
                    now,
                    now,
                ),
            )
        log.debug("store.rule_upserted", rule_id=rule.id, inserted=not existed)
        return not existed

    def delete_rule(self, rule_id: str) -> bool:
        with self._session() as con:
            cur = con.execute("DELETE FROM rules WHERE id = ?", (rule_id,))
            return (cur.rowcount or 0) > 0

    def search_fts(self, match_expression: str, limit: int) -> list[Rule]:
        """Run an FTS5 MATCH, best rank first, insertion order on ties."""
        with self._session() as con:
            rows = con.execute(
                f"""
                SELECT {_R_COLUMNS}
                FROM rules_fts
                JOIN rules r ON r.rowid = rules_fts.rowid
                WHERE rules_fts MATCH ?
                ORDER BY rules_fts.rank, r.rowid
                LIMIT ?
                """,
                (match_expression, limit),
            ).fetchall()
            return [_row_to_rule(row) for row in rows]

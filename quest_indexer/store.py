"""sqlite3-backed entity store.

One table per entity kind holds JSON-encoded records keyed by their
identifier. Insertion order is preserved by an autoincrement ``seq`` column
that upserts never touch, so child listings come back in the order facts
were first recorded. Alongside the entity tables live the raw ``events``
log, the ``sync_state`` checkpoint and the ``dropped_events`` ledger.
"""

import json
import sqlite3
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from quest_indexer.entities import ENTITY_TYPES, Record
from quest_indexer.events import Event
from quest_indexer.utils import _json_dumps

R = TypeVar("R", bound=Record)

Checkpoint = Tuple[int, Optional[int]]


class EntityStore:
    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        self._tx_depth = 0

    def init_db(self) -> None:
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        cur = self.conn.cursor()
        for kind in ENTITY_TYPES:
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {kind} (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    parent TEXT,
                    data TEXT NOT NULL
                )
                """
            )
            cur.execute(f"CREATE INDEX IF NOT EXISTS idx_{kind}_parent ON {kind}(parent)")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                block_number INTEGER NOT NULL,
                block_timestamp INTEGER,
                transaction_hash TEXT NOT NULL,
                transaction_index INTEGER,
                log_index INTEGER NOT NULL,
                contract_name TEXT NOT NULL,
                event_name TEXT NOT NULL,
                decoded_args TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(transaction_hash, log_index)
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_events_position "
            "ON events(block_number, transaction_index, log_index)"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS sync_state (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                last_processed_block INTEGER NOT NULL,
                last_processed_log_index INTEGER,
                last_processed_timestamp INTEGER,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS dropped_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                block_number INTEGER NOT NULL,
                transaction_hash TEXT NOT NULL,
                log_index INTEGER NOT NULL,
                contract_name TEXT NOT NULL,
                event_name TEXT NOT NULL,
                reason TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(transaction_hash, log_index)
            )
            """
        )
        self.conn.commit()

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _cursor(self) -> sqlite3.Cursor:
        if not self.conn:
            raise RuntimeError("DB not initialized")
        return self.conn.cursor()

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        """Group writes so they become visible together or not at all."""
        if not self.conn:
            raise RuntimeError("DB not initialized")
        self._tx_depth += 1
        try:
            yield self
        except BaseException:
            self._tx_depth -= 1
            if self._tx_depth == 0:
                self.conn.rollback()
            raise
        else:
            self._tx_depth -= 1
            if self._tx_depth == 0:
                self.conn.commit()

    @contextmanager
    def savepoint(self, name: str = "handler") -> Iterator["EntityStore"]:
        """Nested scope inside a transaction that can be undone on its own."""
        if not self.conn:
            raise RuntimeError("DB not initialized")
        if self._tx_depth == 0:
            raise RuntimeError("savepoint() must run inside transaction()")
        if not self.conn.in_transaction:
            self.conn.execute("BEGIN")
        self.conn.execute(f"SAVEPOINT {name}")
        try:
            yield self
        except BaseException:
            self.conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            self.conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        else:
            self.conn.execute(f"RELEASE SAVEPOINT {name}")

    def _autocommit(self) -> None:
        if self._tx_depth == 0:
            self.conn.commit()

    # Entities

    def get(self, kind: Type[R], key: str) -> Optional[R]:
        row = self._cursor().execute(
            f"SELECT data FROM {kind.KIND} WHERE id = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return kind.from_dict(json.loads(row["data"]))

    def put(self, record: Record) -> None:
        self._cursor().execute(
            f"""
            INSERT INTO {record.KIND} (id, parent, data) VALUES (?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET parent = excluded.parent, data = excluded.data
            """,
            (record.id, record.parent, _json_dumps(record.to_dict())),
        )
        self._autocommit()

    def create_if_absent(self, record: Record) -> bool:
        """Insert ``record`` unless its key exists. Returns True when inserted."""
        cur = self._cursor()
        cur.execute(
            f"INSERT OR IGNORE INTO {record.KIND} (id, parent, data) VALUES (?, ?, ?)",
            (record.id, record.parent, _json_dumps(record.to_dict())),
        )
        self._autocommit()
        return cur.rowcount == 1

    def get_or_create(
        self, kind: Type[R], key: str, factory: Callable[[str], R]
    ) -> Tuple[R, bool]:
        existing = self.get(kind, key)
        if existing is not None:
            return existing, False
        record = factory(key)
        self.put(record)
        return record, True

    def list(self, kind: Type[R], parent: Optional[str] = None) -> List[R]:
        cur = self._cursor()
        if parent is None:
            rows = cur.execute(f"SELECT data FROM {kind.KIND} ORDER BY seq ASC").fetchall()
        else:
            rows = cur.execute(
                f"SELECT data FROM {kind.KIND} WHERE parent = ? ORDER BY seq ASC", (parent,)
            ).fetchall()
        return [kind.from_dict(json.loads(row["data"])) for row in rows]

    def count(self, kind: Type[Record]) -> int:
        row = self._cursor().execute(f"SELECT COUNT(*) AS n FROM {kind.KIND}").fetchone()
        return int(row["n"])

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Every entity table as ``{kind: {id: record dict}}``."""
        cur = self._cursor()
        out: Dict[str, Dict[str, Any]] = {}
        for kind in ENTITY_TYPES:
            rows = cur.execute(f"SELECT id, data FROM {kind} ORDER BY seq ASC").fetchall()
            out[kind] = {row["id"]: json.loads(row["data"]) for row in rows}
        return out

    # Raw event log

    def record_event(self, event: Event) -> None:
        self._cursor().execute(
            """
            INSERT OR IGNORE INTO events (
                block_number, block_timestamp, transaction_hash, transaction_index,
                log_index, contract_name, event_name, decoded_args
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.block_number,
                event.block_timestamp,
                event.transaction_hash,
                event.transaction_index,
                event.log_index,
                event.contract,
                event.name,
                _json_dumps(event.args),
            ),
        )
        self._autocommit()

    def iter_events(self, to_block: Optional[int] = None) -> Iterator[Event]:
        params: List[Any] = []
        where = ""
        if to_block is not None:
            where = "WHERE block_number <= ?"
            params.append(to_block)
        rows = self._cursor().execute(
            f"""
            SELECT block_number, block_timestamp, transaction_hash, transaction_index,
                   log_index, contract_name, event_name, decoded_args
            FROM events {where}
            ORDER BY block_number ASC, transaction_index ASC, log_index ASC
            """,
            params,
        ).fetchall()
        for row in rows:
            args = json.loads(row["decoded_args"]) if row["decoded_args"] else {}
            yield Event(
                name=row["event_name"],
                contract=row["contract_name"],
                args=args,
                block_number=row["block_number"],
                block_timestamp=row["block_timestamp"] or 0,
                transaction_hash=row["transaction_hash"],
                transaction_index=row["transaction_index"] or 0,
                log_index=row["log_index"],
            )

    # Checkpoint

    def checkpoint(self) -> Optional[Checkpoint]:
        """Last ledger position reflected in the projection.

        ``(block, log_index)`` means every event up to and including that log
        has been applied; ``(block, None)`` means the whole block has.
        """
        row = self._cursor().execute(
            "SELECT last_processed_block, last_processed_log_index FROM sync_state WHERE id = 1"
        ).fetchone()
        if row is None:
            return None
        return int(row["last_processed_block"]), row["last_processed_log_index"]

    def set_checkpoint(
        self, block_number: int, log_index: Optional[int], block_timestamp: Optional[int] = None
    ) -> None:
        self._cursor().execute(
            """
            INSERT INTO sync_state (
                id, last_processed_block, last_processed_log_index, last_processed_timestamp
            ) VALUES (1, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                last_processed_block = excluded.last_processed_block,
                last_processed_log_index = excluded.last_processed_log_index,
                last_processed_timestamp = excluded.last_processed_timestamp,
                updated_at = CURRENT_TIMESTAMP
            """,
            (block_number, log_index, block_timestamp),
        )
        self._autocommit()

    # Dropped events

    def record_dropped(self, event: Event, reason: str) -> None:
        self._cursor().execute(
            """
            INSERT OR IGNORE INTO dropped_events (
                block_number, transaction_hash, log_index, contract_name, event_name, reason
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                event.block_number,
                event.transaction_hash,
                event.log_index,
                event.contract,
                event.name,
                reason,
            ),
        )
        self._autocommit()

    def dropped_events(self) -> List[Dict[str, Any]]:
        rows = self._cursor().execute(
            """
            SELECT block_number, transaction_hash, log_index, contract_name, event_name, reason
            FROM dropped_events ORDER BY id ASC
            """
        ).fetchall()
        return [dict(row) for row in rows]

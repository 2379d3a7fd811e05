import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from ledgermarket.utils.logger import get_logger

logger = get_logger("storage.sqlite")

MEMORY = ":memory:"


class SQLiteAdapter:
    """
    SQLite backend for persistent marketplace storage.

    Provides:
    1. Key-Value store for entity records, grouped into buckets
       (auctions, bid logs, seller indexes, assets, owner indexes).
    2. Market metadata: process-wide scalars (admin, counters).
    3. Append-only event log.

    Writes of one marketplace call go through `transaction()`, which holds
    a write lock (BEGIN IMMEDIATE) for the whole read-validate-write
    sequence and rolls everything back on any exception.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path
        self._conn_local = threading.local()
        self._shared_conn: Optional[sqlite3.Connection] = None

        if db_path is not None and not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    @property
    def in_memory(self) -> bool:
        return self.db_path is None

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            MEMORY if self.in_memory else str(self.db_path),
            timeout=30.0,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        if not self.in_memory:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        # An in-memory database only exists inside one connection
        if self.in_memory:
            if self._shared_conn is None:
                self._shared_conn = self._connect()
            return self._shared_conn

        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = self._connect()
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. KV Store (entity records and collections)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    bucket TEXT NOT NULL DEFAULT 'default'
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_kv_bucket ON kv_store(bucket);")

            # 2. Market metadata (admin, id counters)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS market_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            # 3. Event log
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    sequence INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_kind ON events(kind);")

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block as one write transaction.

        Commits when the block exits normally, rolls back on any exception
        and re-raises it.
        """
        conn = self._get_conn()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()

    # =========================================================================
    # Key-Value Operations
    # =========================================================================

    def put(self, key: str, value: bytes, bucket: str = "default"):
        """Save a key-value pair in its own transaction."""
        conn = self._get_conn()
        with conn:
            self.put_in(conn, key, value, bucket)

    @staticmethod
    def put_in(conn: sqlite3.Connection, key: str, value: bytes, bucket: str = "default"):
        """Save a key-value pair inside an open transaction."""
        conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value, bucket) VALUES (?, ?, ?)",
            (key, value, bucket)
        )

    def get(self, key: str) -> Optional[bytes]:
        """Get value by key."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    def count(self, bucket: str) -> int:
        conn = self._get_conn()
        cursor = conn.execute("SELECT COUNT(*) AS cnt FROM kv_store WHERE bucket = ?", (bucket,))
        return cursor.fetchone()["cnt"]

    # =========================================================================
    # Market Metadata
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            self.set_meta_in(conn, key, value)

    @staticmethod
    def set_meta_in(conn: sqlite3.Connection, key: str, value: str):
        conn.execute("INSERT OR REPLACE INTO market_meta (key, value) VALUES (?, ?)", (key, value))

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM market_meta WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    # =========================================================================
    # Event Log
    # =========================================================================

    @staticmethod
    def append_event_in(conn: sqlite3.Connection, kind: str, payload: str, timestamp: int) -> int:
        """Append an event inside an open transaction. Returns its sequence."""
        cursor = conn.execute(
            "INSERT INTO events (kind, payload, timestamp) VALUES (?, ?, ?)",
            (kind, payload, timestamp)
        )
        return cursor.lastrowid

    def get_events(self, since: int = 0, kind: Optional[str] = None) -> List[Tuple[int, str, str, int]]:
        """Get (sequence, kind, payload, timestamp) rows ordered by sequence."""
        conn = self._get_conn()
        if kind is None:
            cursor = conn.execute(
                "SELECT sequence, kind, payload, timestamp FROM events WHERE sequence > ? ORDER BY sequence ASC",
                (since,)
            )
        else:
            cursor = conn.execute(
                "SELECT sequence, kind, payload, timestamp FROM events "
                "WHERE sequence > ? AND kind = ? ORDER BY sequence ASC",
                (since, kind)
            )
        return [(row["sequence"], row["kind"], row["payload"], row["timestamp"]) for row in cursor]

    def last_event_sequence(self) -> int:
        conn = self._get_conn()
        cursor = conn.execute("SELECT COALESCE(MAX(sequence), 0) AS seq FROM events")
        return cursor.fetchone()["seq"]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self):
        """Close the connection owned by the current thread."""
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn

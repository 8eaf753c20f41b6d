"""
Client store backend (SQLite).

Local stand-in for the dashboard data service: clients, their board entry
(kanban column + position) and proposals. Moves are normalized here: after
every stage update the affected columns are renumbered densely from 0.
"""
import sqlite3
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Dict, Any

from .stages import StageId, first_stage

logger = logging.getLogger(__name__)


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class ClientStore:
    """SQLite-backed store for clients and their pipeline placement."""

    def __init__(self, db_path: str = None):
        """Initialize store and create tables if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "dashboard" / "pipeline.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        """Create tables if they don't exist."""
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS clients (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    organization TEXT DEFAULT '',
                    email TEXT DEFAULT '',
                    phone TEXT DEFAULT '',
                    company TEXT DEFAULT '',
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kanban (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    client_id INTEGER NOT NULL UNIQUE,
                    "column" TEXT NOT NULL DEFAULT 'lead',
                    position INTEGER NOT NULL DEFAULT 0,
                    FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS proposals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    client_id INTEGER NOT NULL,
                    value REAL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
                )
            """)
            conn.execute('CREATE INDEX IF NOT EXISTS idx_kanban_column ON kanban("column", position)')
            conn.execute("CREATE INDEX IF NOT EXISTS idx_proposals_client ON proposals(client_id)")
            conn.commit()

    # ── Clients ──

    def create_client(
        self,
        name: str,
        organization: str = "",
        email: str = "",
        phone: str = "",
        company: str = "",
    ) -> Dict[str, Any]:
        """Insert a client and place it at the end of the first column."""
        now = datetime.now(timezone.utc).isoformat()
        stage = first_stage()
        with _connect(self.db_path) as conn:
            cursor = conn.execute(
                "INSERT INTO clients (name, organization, email, phone, company, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (name, organization, email, phone, company, now),
            )
            client_id = cursor.lastrowid
            conn.execute(
                'INSERT INTO kanban (client_id, "column", position) VALUES (?, ?, ?)',
                (client_id, stage.value, self._next_position(conn, stage)),
            )
            conn.commit()
        logger.info(f"Client created: id={client_id} name={name!r}")
        return self.get_client(client_id)

    def get_client(self, client_id: int) -> Optional[Dict[str, Any]]:
        """Retrieve one client with its board entry, or None."""
        with _connect(self.db_path) as conn:
            row = conn.execute(self._ROSTER_SQL + " WHERE c.id = ?", (client_id,)).fetchone()
        return self._row_to_client(row) if row else None

    def list_clients_with_kanban(self) -> List[Dict[str, Any]]:
        """All clients with board entry, proposal count and total value."""
        with _connect(self.db_path) as conn:
            rows = conn.execute(self._ROSTER_SQL + " ORDER BY c.id ASC").fetchall()
        return [self._row_to_client(row) for row in rows]

    def delete_client(self, client_id: int) -> bool:
        """Delete a client together with its board entry and proposals."""
        with _connect(self.db_path) as conn:
            entry = conn.execute(
                'SELECT "column" FROM kanban WHERE client_id = ?', (client_id,)
            ).fetchone()
            cursor = conn.execute("DELETE FROM clients WHERE id = ?", (client_id,))
            if entry:
                self._renumber(conn, entry["column"])
            conn.commit()
            return cursor.rowcount > 0

    def add_proposal(self, client_id: int, value: Optional[float] = None) -> int:
        """Record a proposal for a client. Returns the proposal id."""
        now = datetime.now(timezone.utc).isoformat()
        with _connect(self.db_path) as conn:
            cursor = conn.execute(
                "INSERT INTO proposals (client_id, value, created_at) VALUES (?, ?, ?)",
                (client_id, value, now),
            )
            conn.commit()
            return cursor.lastrowid

    # ── Pipeline placement ──

    def next_position(self, stage: StageId) -> int:
        """Position one past the current maximum of a column (0 when empty)."""
        with _connect(self.db_path) as conn:
            return self._next_position(conn, stage)

    def update_client_stage(
        self, client_id: int, stage: StageId, position: Optional[int] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Move a client to a column.

        position=None appends at the end; otherwise the client is inserted
        at that index (clamped). Source and target columns are renumbered
        densely afterwards.

        Returns:
            The new board entry {client_id, column, position}, or None if the
            client does not exist.
        """
        with _connect(self.db_path) as conn:
            if not conn.execute("SELECT 1 FROM clients WHERE id = ?", (client_id,)).fetchone():
                return None

            entry = conn.execute(
                'SELECT "column" FROM kanban WHERE client_id = ?', (client_id,)
            ).fetchone()
            source = entry["column"] if entry else None

            others = [
                r["client_id"] for r in conn.execute(
                    'SELECT client_id FROM kanban WHERE "column" = ? AND client_id != ? '
                    "ORDER BY position ASC, id ASC",
                    (stage.value, client_id),
                )
            ]
            if position is None:
                index = len(others)
            else:
                index = max(0, min(int(position), len(others)))
            others.insert(index, client_id)

            if entry is None:
                conn.execute(
                    'INSERT INTO kanban (client_id, "column", position) VALUES (?, ?, ?)',
                    (client_id, stage.value, index),
                )
            for pos, cid in enumerate(others):
                conn.execute(
                    'UPDATE kanban SET "column" = ?, position = ? WHERE client_id = ?',
                    (stage.value, pos, cid),
                )
            if source and source != stage.value:
                self._renumber(conn, source)
            conn.commit()

        logger.info(f"Client {client_id} moved to {stage.value}[{index}]")
        return {"client_id": client_id, "column": stage.value, "position": index}

    # ── Internals ──

    _ROSTER_SQL = """
        SELECT c.*, k."column" AS kanban_column, k.position AS kanban_position,
               (SELECT COUNT(*) FROM proposals p WHERE p.client_id = c.id) AS proposal_count,
               (SELECT SUM(p.value) FROM proposals p WHERE p.client_id = c.id) AS total_value
        FROM clients c
        LEFT JOIN kanban k ON k.client_id = c.id
    """

    @staticmethod
    def _next_position(conn: sqlite3.Connection, stage: StageId) -> int:
        row = conn.execute(
            'SELECT MAX(position) FROM kanban WHERE "column" = ?', (stage.value,)
        ).fetchone()
        return 0 if row[0] is None else row[0] + 1

    @staticmethod
    def _renumber(conn: sqlite3.Connection, column: str) -> None:
        rows = conn.execute(
            'SELECT client_id FROM kanban WHERE "column" = ? ORDER BY position ASC, id ASC',
            (column,),
        ).fetchall()
        for pos, row in enumerate(rows):
            conn.execute("UPDATE kanban SET position = ? WHERE client_id = ?", (pos, row["client_id"]))

    @staticmethod
    def _row_to_client(row: sqlite3.Row) -> Dict[str, Any]:
        """Convert a roster row to the data-service client shape."""
        data = dict(row)
        column = data.pop("kanban_column", None)
        position = data.pop("kanban_position", None)
        data["kanban"] = {"column": column, "position": position} if column else None
        total = data.get("total_value")
        data["total_value"] = str(total) if total is not None else None
        return data

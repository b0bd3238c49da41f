"""SQLite persistence layer for generated report values."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine


class SQLiteRepository:
    """Lightweight gateway for reading and writing long-format report rows."""

    def __init__(self, database_uri: str, *, echo: bool = False) -> None:
        self._engine: Engine = create_engine(database_uri, echo=echo, future=True)
        self._ensure_schema()

    @property
    def engine(self) -> Engine:
        return self._engine

    # -----------------
    # Schema management
    # -----------------
    def _ensure_schema(self) -> None:
        """Create core tables if they do not already exist."""
        ddl = [
            """
            CREATE TABLE IF NOT EXISTS report_values (
              symbol TEXT NOT NULL,
              key TEXT NOT NULL,
              value TEXT,
              generated_at DATETIME NOT NULL,
              PRIMARY KEY (symbol, key)
            );
            """,
            """CREATE INDEX IF NOT EXISTS idx_report_values_symbol ON report_values(symbol);""",
        ]
        with self._engine.begin() as conn:
            for statement in ddl:
                conn.execute(text(statement))

    # ------------------
    # Report values CRUD
    # ------------------
    def upsert_key_values(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Persist (symbol, key, value) rows, replacing earlier values for the same key."""
        generated_at = datetime.now(timezone.utc).isoformat()
        payload = [
            {
                "symbol": row.get("symbol"),
                "key": row.get("key"),
                "value": None if row.get("value") is None else str(row.get("value")),
                "generated_at": generated_at,
            }
            for row in rows
            if row.get("symbol") and row.get("key")
        ]
        if not payload:
            return 0

        stmt = text(
            """
            INSERT INTO report_values (symbol, key, value, generated_at)
            VALUES (:symbol, :key, :value, :generated_at)
            ON CONFLICT(symbol, key) DO UPDATE SET
                value=excluded.value,
                generated_at=excluded.generated_at
            """
        )
        with self._engine.begin() as conn:
            conn.execute(stmt, payload)
        return len(payload)

    def fetch_key_values(self, symbol: str) -> List[Dict[str, Any]]:
        """Load stored rows for ``symbol`` ordered by key."""
        query = text(
            """
            SELECT symbol, key, value, generated_at
            FROM report_values
            WHERE symbol = :symbol
            ORDER BY key
            """
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"symbol": symbol})
            return [dict(row) for row in rows.mappings()]

    def close(self) -> None:
        self._engine.dispose()

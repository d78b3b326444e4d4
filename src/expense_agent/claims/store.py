"""SQLite-backed claims store."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

from expense_agent.errors import ServiceError
from expense_agent.types import ClaimStatus, ExpenseClaim

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS claims (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL,
    description TEXT NOT NULL,
    amount TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'Submitted',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_claims_email ON claims(email);
"""


class SqliteClaimsStore:
    """Inserts and lists expense claims.

    Claims are only ever created here; status transitions happen elsewhere.
    Every `sqlite3.Error` is re-raised as `ServiceError`.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)

    def submit(self, email: str, description: str, amount: Decimal) -> ExpenseClaim:
        amount = amount.quantize(_CENTS)
        created_at = datetime.now(timezone.utc)
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO claims (email, description, amount, status, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    email,
                    description,
                    str(amount),
                    ClaimStatus.SUBMITTED.value,
                    created_at.isoformat(),
                ),
            )
            claim_id = int(cursor.lastrowid)

        logger.info("Claim %d saved for %s", claim_id, email)
        return ExpenseClaim(
            id=claim_id,
            email=email,
            description=description,
            amount=amount,
            status=ClaimStatus.SUBMITTED.value,
            created_at=created_at,
        )

    def list_by_email(self, email: str) -> list[ExpenseClaim]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, email, description, amount, status, created_at "
                "FROM claims WHERE email = ? ORDER BY id",
                (email,),
            ).fetchall()
        return [_row_to_claim(row) for row in rows]

    def count(self) -> int:
        with self._connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM claims").fetchone()[0])

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise ServiceError(f"Cannot open claims database: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise ServiceError(f"Claims database error: {exc}") from exc
        finally:
            conn.close()


def _row_to_claim(row: sqlite3.Row) -> ExpenseClaim:
    return ExpenseClaim(
        id=int(row["id"]),
        email=row["email"],
        description=row["description"],
        amount=Decimal(row["amount"]),
        status=row["status"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )

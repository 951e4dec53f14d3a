"""
Usage ledger.

Append-only log of token usage per user. A user's quota position is always
recomputed from this ledger, never kept as a separate counter.
"""

import sqlite3
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from framium.core.errors import LedgerWriteError

from .db import DEFAULT_DB_PATH, get_connection
from .models import MonthlyUsage, RequestKind, UsageRecord

COST_QUANTUM = Decimal("0.000001")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_iso(moment: datetime) -> str:
    """Serialize a timestamp so that lexical order equals time order.

    Naive datetimes are taken to be UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """First instant of the current calendar month in UTC."""
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class UsageLedger:
    """Append-only store of UsageRecords backed by SQLite."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the ledger with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def record(
        self,
        user_id: str,
        model: str,
        tokens: int,
        cost: Decimal,
        kind: RequestKind = RequestKind.CHAT,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Append one usage record.

        Call at most once per successfully completed provider dispatch.

        Args:
            user_id: Owning user
            model: Namespaced model identifier
            tokens: Tokens consumed (>= 0)
            cost: Cost in USD (>= 0)
            kind: Request kind
            created_at: Record timestamp, defaults to now (UTC)

        Returns:
            Id of the new record

        Raises:
            ValueError: If tokens or cost is negative
            LedgerWriteError: If the row could not be written
        """
        record = UsageRecord(
            user_id=user_id,
            model=model,
            tokens_used=int(tokens),
            cost_usd=Decimal(cost),
            request_kind=RequestKind(kind),
            created_at=created_at or utc_now(),
        )

        try:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute("""
                    INSERT INTO token_usage
                    (user_id, model, tokens_used, cost_usd, request_type, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, (
                    record.user_id,
                    record.model,
                    record.tokens_used,
                    float(record.cost_usd.quantize(COST_QUANTUM)),
                    record.request_kind.value,
                    to_utc_iso(record.created_at),
                ))
                conn.commit()
                return cursor.lastrowid
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise LedgerWriteError(f"Failed to record usage for {user_id}: {e}") from e

    def monthly_usage(self, user_id: str, now: Optional[datetime] = None) -> MonthlyUsage:
        """Aggregate a user's usage since the first of the current UTC month.

        Args:
            user_id: User to aggregate
            now: Reference time, defaults to now (UTC)

        Returns:
            MonthlyUsage, zero-valued when the user has no records this month
        """
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT
                    COALESCE(SUM(tokens_used), 0),
                    COALESCE(SUM(cost_usd), 0)
                FROM token_usage
                WHERE user_id = ? AND created_at >= ?
            """, (user_id, to_utc_iso(start_of_month(now)))).fetchone()
        finally:
            conn.close()

        return MonthlyUsage(
            total_tokens=int(row[0]),
            total_cost=Decimal(str(row[1])).quantize(COST_QUANTUM),
        )

    def recent_records(self, user_id: Optional[str] = None, limit: int = 100) -> List[UsageRecord]:
        """Fetch records newest first, optionally for one user."""
        conn = get_connection(self.db_path)
        try:
            query = """
                SELECT id, user_id, model, tokens_used, cost_usd, request_type, created_at
                FROM token_usage
            """
            params: list = []
            if user_id:
                query += " WHERE user_id = ?"
                params.append(user_id)
            query += " ORDER BY created_at DESC, id DESC LIMIT ?"
            params.append(limit)

            records = []
            for row in conn.execute(query, params).fetchall():
                records.append(UsageRecord(
                    id=row[0],
                    user_id=row[1],
                    model=row[2],
                    tokens_used=row[3],
                    cost_usd=Decimal(str(row[4])).quantize(COST_QUANTUM),
                    request_kind=RequestKind(row[5]),
                    created_at=datetime.fromisoformat(row[6]),
                ))
            return records
        finally:
            conn.close()

    def count(self, user_id: Optional[str] = None) -> int:
        conn = get_connection(self.db_path)
        try:
            if user_id:
                row = conn.execute(
                    "SELECT COUNT(*) FROM token_usage WHERE user_id = ?", (user_id,)
                ).fetchone()
            else:
                row = conn.execute("SELECT COUNT(*) FROM token_usage").fetchone()
            return row[0]
        finally:
            conn.close()

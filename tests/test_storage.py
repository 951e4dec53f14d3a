"""
Unit tests for storage layer.

Tests schema creation, the append-only usage ledger, monthly aggregation
and the user store.
"""

import os
import shutil
import sqlite3
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from framium.core.errors import LedgerWriteError
from framium.storage.db import get_connection, initialize_schema
from framium.storage.ledger import UsageLedger, start_of_month, to_utc_iso
from framium.storage.models import MonthlyUsage, RequestKind
from framium.storage.users import UserRepository

OCT_15 = datetime(2026, 10, 15, 12, 0, 0, tzinfo=timezone.utc)


class StorageTestCase:
    """Temporary database shared by the storage tests."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        self.users = UserRepository(self.db_path)
        self.ledger = UsageLedger(self.db_path)
        self.user = self.users.create_user("ada@example.com", "Ada", "BASIC")

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestStorageSchema:
    """Test database schema creation and structure."""

    def test_schema_creation(self):
        """Verify tables are created with the expected columns."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            initialize_schema(db_path)

            conn = get_connection(db_path)
            try:
                cursor = conn.execute("PRAGMA table_info(token_usage)")
                column_names = [col[1] for col in cursor.fetchall()]
                assert column_names == [
                    'id', 'user_id', 'model', 'tokens_used',
                    'cost_usd', 'request_type', 'created_at'
                ]

                cursor = conn.execute("PRAGMA table_info(users)")
                column_names = [col[1] for col in cursor.fetchall()]
                assert column_names == [
                    'id', 'email', 'name', 'plan',
                    'stripe_customer_id', 'created_at', 'updated_at'
                ]
            finally:
                conn.close()

    def test_schema_creation_is_idempotent(self):
        """Verify initializing twice is harmless."""
        with tempfile.TemporaryDirectory() as temp_dir:
            db_path = os.path.join(temp_dir, "test.db")
            initialize_schema(db_path)
            initialize_schema(db_path)


class TestTimestamps:
    """Test UTC timestamp handling."""

    def test_start_of_month_utc(self):
        """Verify the month boundary is midnight UTC on the 1st."""
        assert start_of_month(OCT_15) == datetime(2026, 10, 1, tzinfo=timezone.utc)

    def test_start_of_month_converts_offsets(self):
        """Verify a local time just after midnight on the 1st belongs to the previous UTC month."""
        local = datetime(2026, 10, 1, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert start_of_month(local) == datetime(2026, 9, 1, tzinfo=timezone.utc)

    def test_iso_format_sorts_chronologically(self):
        """Verify serialized timestamps order lexically like the instants."""
        earlier = datetime(2026, 10, 1, 0, 0, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(microseconds=1)
        assert to_utc_iso(earlier) < to_utc_iso(later)
        assert to_utc_iso(earlier) == "2026-10-01T00:00:00.000000+00:00"


class TestUsageLedger(StorageTestCase):
    """Test appending and aggregating usage records."""

    def test_record_returns_id(self):
        """Verify a record is appended and its id returned."""
        record_id = self.ledger.record(self.user.id, "openai/gpt-4.1", 150, Decimal("0.00045"))
        assert record_id == 1
        assert self.ledger.count() == 1

        records = self.ledger.recent_records(self.user.id)
        assert len(records) == 1
        assert records[0].id == record_id
        assert records[0].model == "openai/gpt-4.1"
        assert records[0].tokens_used == 150
        assert records[0].cost_usd == Decimal("0.00045")
        assert records[0].request_kind == RequestKind.CHAT

    def test_record_kind_persisted(self):
        """Verify request kinds round through storage."""
        self.ledger.record(self.user.id, "openai/gpt-4.1", 10, Decimal("0"), RequestKind.AGENT)
        self.ledger.record(self.user.id, "openai/gpt-4.1", 10, Decimal("0"), RequestKind.TASK)
        kinds = {r.request_kind for r in self.ledger.recent_records(self.user.id)}
        assert kinds == {RequestKind.AGENT, RequestKind.TASK}

    def test_negative_tokens_rejected(self):
        """Verify negative amounts are refused before any write."""
        with pytest.raises(ValueError, match="tokens_used cannot be negative"):
            self.ledger.record(self.user.id, "openai/gpt-4.1", -1, Decimal("0"))
        with pytest.raises(ValueError, match="cost_usd cannot be negative"):
            self.ledger.record(self.user.id, "openai/gpt-4.1", 1, Decimal("-0.1"))
        assert self.ledger.count() == 0

    def test_write_failure_wrapped(self):
        """Verify a database failure surfaces as LedgerWriteError."""
        with pytest.raises(LedgerWriteError):
            self.ledger.record("no-such-user", "openai/gpt-4.1", 10, Decimal("0.01"))
        assert self.ledger.count() == 0

    def test_write_failure_when_table_missing(self):
        """Verify a missing table is also a LedgerWriteError."""
        ledger = UsageLedger(os.path.join(self.temp_dir, "empty.db"))
        with pytest.raises(LedgerWriteError):
            ledger.record(self.user.id, "openai/gpt-4.1", 10, Decimal("0.01"))

    def test_monthly_usage_empty(self):
        """Verify a user with no records has zero usage, not an error."""
        usage = self.ledger.monthly_usage(self.user.id, now=OCT_15)
        assert usage == MonthlyUsage(total_tokens=0, total_cost=Decimal("0"))

    def test_monthly_usage_sums_current_month(self):
        """Verify tokens and cost are summed for this month only."""
        self.ledger.record(self.user.id, "openai/gpt-4.1", 100, Decimal("0.0003"),
                           created_at=datetime(2026, 10, 2, tzinfo=timezone.utc))
        self.ledger.record(self.user.id, "openai/gpt-4o", 200, Decimal("0.005"),
                           created_at=datetime(2026, 10, 14, tzinfo=timezone.utc))
        self.ledger.record(self.user.id, "openai/gpt-4o", 999, Decimal("1"),
                           created_at=datetime(2026, 9, 20, tzinfo=timezone.utc))

        usage = self.ledger.monthly_usage(self.user.id, now=OCT_15)
        assert usage.total_tokens == 300
        assert usage.total_cost == Decimal("0.0053")

    def test_monthly_usage_boundary_at_utc_midnight(self):
        """Verify the last microsecond of the previous month is excluded."""
        self.ledger.record(self.user.id, "openai/gpt-4.1", 7, Decimal("0"),
                           created_at=datetime(2026, 9, 30, 23, 59, 59, 999999, tzinfo=timezone.utc))
        self.ledger.record(self.user.id, "openai/gpt-4.1", 11, Decimal("0"),
                           created_at=datetime(2026, 10, 1, 0, 0, 0, tzinfo=timezone.utc))
        # 01:30 on Oct 1 at +02:00 is still September in UTC
        self.ledger.record(self.user.id, "openai/gpt-4.1", 13, Decimal("0"),
                           created_at=datetime(2026, 10, 1, 1, 30, tzinfo=timezone(timedelta(hours=2))))

        assert self.ledger.monthly_usage(self.user.id, now=OCT_15).total_tokens == 11

    def test_monthly_usage_resets_next_month(self):
        """Verify usage starts from zero in a new month."""
        self.ledger.record(self.user.id, "openai/gpt-4.1", 500, Decimal("0.0015"),
                           created_at=datetime(2026, 10, 3, tzinfo=timezone.utc))
        november = datetime(2026, 11, 1, 0, 0, 1, tzinfo=timezone.utc)
        assert self.ledger.monthly_usage(self.user.id, now=november).total_tokens == 0

    def test_monthly_usage_monotonic_within_month(self):
        """Verify usage never decreases as records are appended."""
        previous = 0
        for day in range(1, 10):
            self.ledger.record(self.user.id, "openai/gpt-4.1", day * 10, Decimal("0.001"),
                               created_at=datetime(2026, 10, day, tzinfo=timezone.utc))
            total = self.ledger.monthly_usage(self.user.id, now=OCT_15).total_tokens
            assert total >= previous
            previous = total
        assert previous == sum(day * 10 for day in range(1, 10))

    def test_monthly_usage_idempotent(self):
        """Verify repeated reads without new records agree."""
        self.ledger.record(self.user.id, "openai/gpt-4.1", 42, Decimal("0.000126"),
                           created_at=datetime(2026, 10, 5, tzinfo=timezone.utc))
        first = self.ledger.monthly_usage(self.user.id, now=OCT_15)
        second = self.ledger.monthly_usage(self.user.id, now=OCT_15)
        assert first == second

    def test_monthly_usage_per_user(self):
        """Verify one user's records do not count against another."""
        other = self.users.create_user("grace@example.com", "Grace", "MAX")
        self.ledger.record(other.id, "openai/gpt-4o", 1000, Decimal("0.025"),
                           created_at=datetime(2026, 10, 5, tzinfo=timezone.utc))
        assert self.ledger.monthly_usage(self.user.id, now=OCT_15).total_tokens == 0
        assert self.ledger.monthly_usage(other.id, now=OCT_15).total_tokens == 1000

    def test_recent_records_newest_first(self):
        """Verify records come back in reverse chronological order."""
        for day in (3, 1, 2):
            self.ledger.record(self.user.id, "openai/gpt-4.1", day, Decimal("0"),
                               created_at=datetime(2026, 10, day, tzinfo=timezone.utc))
        records = self.ledger.recent_records(limit=2)
        assert [r.tokens_used for r in records] == [3, 2]


class TestUserRepository(StorageTestCase):
    """Test the user store."""

    def test_create_and_get_user(self):
        """Verify a created user can be read back."""
        user = self.users.get_user(self.user.id)
        assert user == self.user
        assert user.email == "ada@example.com"
        assert user.plan == "BASIC"
        assert user.stripe_customer_id is None

    def test_get_missing_user(self):
        """Verify an unknown id returns None."""
        assert self.users.get_user("missing") is None

    def test_get_by_email(self):
        """Verify lookup by email."""
        assert self.users.get_user_by_email("ada@example.com").id == self.user.id

    def test_duplicate_email_rejected(self):
        """Verify emails are unique."""
        with pytest.raises(sqlite3.IntegrityError):
            self.users.create_user("ada@example.com", "Other Ada")

    def test_invalid_plan_rejected(self):
        """Verify only known tiers can be stored."""
        with pytest.raises(ValueError, match="plan must be one of"):
            self.users.create_user("x@example.com", "X", "GOLD")

    def test_missing_fields_rejected(self):
        """Verify email and name are required."""
        with pytest.raises(ValueError, match="email is required"):
            self.users.create_user("", "X")
        with pytest.raises(ValueError, match="name is required"):
            self.users.create_user("x@example.com", " ")

    def test_update_plan(self):
        """Verify the explicit upgrade action."""
        assert self.users.update_plan(self.user.id, "beast")
        assert self.users.get_plan(self.user.id) == "BEAST"

    def test_update_plan_missing_user(self):
        """Verify upgrading an unknown user reports False."""
        assert not self.users.update_plan("missing", "MAX")

    def test_get_plan_defaults_to_basic(self):
        """Verify unknown users read as BASIC."""
        assert self.users.get_plan("missing") == "BASIC"

    def test_set_stripe_customer(self):
        """Verify the billing customer reference is stored."""
        assert self.users.set_stripe_customer(self.user.id, "cus_123")
        assert self.users.get_user(self.user.id).stripe_customer_id == "cus_123"

"""
Tests for the progression store implementations.

These tests verify that the Supabase store issues the expected queries,
wraps client failures in StorageError, and that the in-memory store
persists the same payload layout.

Run e2e tests with: pytest -m e2e
"""
import pytest
from datetime import timedelta
from unittest.mock import MagicMock

from application.exceptions import StorageError
from domain.converters import encode_series
from domain.models import Modality, SeriesKey
from tests.fakes import FIXED_NOW, create_flexibility_series, create_power_series

POWER_KEY = SeriesKey(modality=Modality.POWER, exercise_id="med-ball-slam", user_id="user-1")
FLEX_KEY = SeriesKey(modality=Modality.FLEXIBILITY, exercise_id="hamstring-stretch", user_id="user-1")


# ============================================================================
# Unit Tests (no database required)
# ============================================================================

def _client_returning(payload=None, *, rows=None):
    """Mock Supabase client whose select query returns one payload row."""
    client = MagicMock()
    if rows is None:
        rows = [] if payload is None else [{"payload": payload}]
    select = client.table.return_value.select.return_value
    select.eq.return_value.limit.return_value.execute.return_value = MagicMock(data=rows)
    return client


@pytest.mark.unit
class TestStoreImports:
    """Test that the store classes can be imported."""

    def test_import_from_infrastructure_package(self):
        from infrastructure import InMemoryProgressionStore, SupabaseProgressionStore
        assert SupabaseProgressionStore is not None
        assert InMemoryProgressionStore is not None

    def test_instantiation(self):
        from infrastructure import SupabaseProgressionStore

        mock_client = MagicMock()
        store = SupabaseProgressionStore(mock_client, table="custom_table")
        assert store._client is mock_client
        assert store._table == "custom_table"


@pytest.mark.unit
class TestSupabaseProgressionStore:
    """Supabase store behaviour with a mocked client."""

    def _store(self, client):
        from infrastructure import SupabaseProgressionStore
        return SupabaseProgressionStore(client, clock=lambda: FIXED_NOW)

    def test_save_upserts_full_payload(self):
        client = MagicMock()
        series = create_power_series(POWER_KEY, [100, 200])

        self._store(client).save(POWER_KEY, series)

        client.table.assert_called_with("progression_series")
        row = client.table.return_value.upsert.call_args.args[0]
        assert client.table.return_value.upsert.call_args.kwargs == {"on_conflict": "series_key"}
        assert row["series_key"] == "power:med-ball-slam:user-1"
        assert row["modality"] == "power"
        assert row["user_id"] == "user-1"
        assert row["payload"]["schema_version"] == "1.0"
        assert len(row["payload"]["samples"]) == 2
        assert row["updated_at"] == FIXED_NOW.isoformat()

    def test_save_failure_raises_storage_error(self):
        client = MagicMock()
        client.table.return_value.upsert.return_value.execute.side_effect = RuntimeError("boom")

        with pytest.raises(StorageError, match=r"\[power:med-ball-slam:user-1\]"):
            self._store(client).save(POWER_KEY, create_power_series(POWER_KEY, [100]))

    def test_load_decodes_payload(self):
        series = create_power_series(POWER_KEY, [100, 200])
        client = _client_returning(encode_series(series))

        loaded = self._store(client).load(POWER_KEY)

        assert loaded == series
        client.table.return_value.select.assert_called_with("payload")
        client.table.return_value.select.return_value.eq.assert_called_with(
            "series_key", "power:med-ball-slam:user-1"
        )

    def test_load_missing_row_is_empty(self):
        assert self._store(_client_returning()).load(POWER_KEY) == []

    def test_load_applies_retention(self):
        series = create_flexibility_series(FLEX_KEY, [10, 20, 30])
        client = _client_returning(encode_series(series))

        loaded = self._store(client).load(FLEX_KEY, retention_days=1.5)
        assert [s.rom_percentage for s in loaded] == [20, 30]

    def test_load_failure_raises_storage_error(self):
        client = MagicMock()
        client.table.side_effect = ConnectionError("unreachable")

        with pytest.raises(StorageError):
            self._store(client).load(POWER_KEY)

    def test_corrupt_payload_raises_storage_error(self):
        client = _client_returning("{not json")

        with pytest.raises(StorageError, match="decode"):
            self._store(client).load(POWER_KEY)

    def test_prune_rewrites_series(self):
        series = create_flexibility_series(FLEX_KEY, [10, 20, 30])
        client = _client_returning(encode_series(series))

        kept = self._store(client).prune(FLEX_KEY, 1.5)

        assert [s.rom_percentage for s in kept] == [20, 30]
        row = client.table.return_value.upsert.call_args.args[0]
        assert [s["rom_percentage"] for s in row["payload"]["samples"]] == [20, 30]

    def test_delete(self):
        client = MagicMock()
        delete_query = client.table.return_value.delete.return_value.eq.return_value
        delete_query.execute.return_value = MagicMock(data=[{"series_key": "x"}])

        assert self._store(client).delete(POWER_KEY) is True
        client.table.return_value.delete.return_value.eq.assert_called_with(
            "series_key", "power:med-ball-slam:user-1"
        )

    def test_delete_missing_row(self):
        client = MagicMock()
        client.table.return_value.delete.return_value.eq.return_value.execute.return_value = MagicMock(data=[])
        assert self._store(client).delete(POWER_KEY) is False

    def test_delete_failure_raises_storage_error(self):
        client = MagicMock()
        client.table.return_value.delete.side_effect = RuntimeError("boom")
        with pytest.raises(StorageError):
            self._store(client).delete(POWER_KEY)


@pytest.mark.unit
class TestInMemoryProgressionStore:
    """In-memory store behaviour."""

    def _store(self, now=FIXED_NOW):
        from infrastructure import InMemoryProgressionStore
        return InMemoryProgressionStore(clock=lambda: now)

    def test_save_then_load(self):
        store = self._store()
        series = create_power_series(POWER_KEY, [100, 200])

        store.save(POWER_KEY, series)
        assert store.load(POWER_KEY) == series

    def test_save_replaces_previous_series(self):
        store = self._store()
        store.save(POWER_KEY, create_power_series(POWER_KEY, [100, 200]))
        store.save(POWER_KEY, create_power_series(POWER_KEY, [300]))

        assert [s.power_output for s in store.load(POWER_KEY)] == [300]

    def test_load_unknown_key_is_empty(self):
        assert self._store().load(FLEX_KEY) == []

    def test_keys_are_isolated(self):
        store = self._store()
        store.save(POWER_KEY, create_power_series(POWER_KEY, [100]))
        other = SeriesKey(modality=Modality.POWER, exercise_id="med-ball-slam", user_id="user-2")
        assert store.load(other) == []

    def test_retention_on_load(self):
        store = self._store(now=FIXED_NOW + timedelta(days=2))
        store.save(FLEX_KEY, create_flexibility_series(FLEX_KEY, [10, 20, 30]))

        assert [s.rom_percentage for s in store.load(FLEX_KEY, retention_days=3.5)] == [20, 30]
        assert len(store.load(FLEX_KEY)) == 3

    def test_prune_and_delete(self):
        store = self._store()
        store.save(FLEX_KEY, create_flexibility_series(FLEX_KEY, [10, 20, 30]))

        assert len(store.prune(FLEX_KEY, 1.5)) == 2
        assert len(store.load(FLEX_KEY)) == 2
        assert store.delete(FLEX_KEY) is True
        assert store.delete(FLEX_KEY) is False


# ============================================================================
# E2E Tests (require real database connection - nightly runs only)
# ============================================================================

def _is_real_supabase_url(url: str) -> bool:
    """Check if URL looks like a real Supabase URL (not a test placeholder)."""
    if not url:
        return False
    return (
        url.startswith("https://") and
        ".supabase.co" in url and
        url != "https://test.supabase.co" and
        len(url) > 30
    )


@pytest.mark.e2e
class TestSupabaseProgressionStoreE2E:
    """E2E tests for SupabaseProgressionStore (requires real database)."""

    @pytest.fixture
    def supabase_client(self):
        """Get a real Supabase client for e2e tests."""
        import os
        from supabase import create_client

        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            pytest.skip("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required for e2e tests")

        if not _is_real_supabase_url(url):
            pytest.skip("Real Supabase credentials required for e2e tests (not test placeholders)")

        return create_client(url, key)

    def test_save_load_delete(self, supabase_client):
        import uuid
        from infrastructure import SupabaseProgressionStore

        store = SupabaseProgressionStore(supabase_client)
        key = SeriesKey(
            modality=Modality.POWER,
            exercise_id="med-ball-slam",
            user_id=f"test_user_{uuid.uuid4().hex[:8]}",
        )
        series = create_power_series(key, [120, 180])

        try:
            store.save(key, series)
            assert [s.power_output for s in store.load(key)] == [120, 180]
        finally:
            store.delete(key)

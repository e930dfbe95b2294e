"""Tests for RequestStore."""

from datetime import datetime, timedelta, timezone

import pytest

from browser_monitor.errors import StorageNotInitializedError
from browser_monitor.models import RequestQuery
from browser_monitor.storage import RequestStore


def minutes_ago(minutes: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=minutes)


class TestStoreInit:
    """Tests for RequestStore initialization."""

    async def test_init_creates_table_and_indexes(self, store):
        """Test that init creates the table and its indexes."""
        async with store._conn.execute(
            "SELECT type, name FROM sqlite_master WHERE tbl_name = 'network_requests'"
        ) as cursor:
            rows = await cursor.fetchall()

        names = {name for kind, name in rows}
        assert "network_requests" in names
        assert {
            "idx_requests_timestamp",
            "idx_requests_type",
            "idx_requests_status",
            "idx_requests_url",
            "idx_requests_response_size",
        } <= names

    async def test_not_initialized(self, make_request):
        """Test that operations before init raise a typed error."""
        st = RequestStore(":memory:")
        with pytest.raises(StorageNotInitializedError):
            await st.save(make_request())
        with pytest.raises(RuntimeError):
            await st.query(RequestQuery())

    async def test_close_is_idempotent(self):
        """Test that closing twice is safe."""
        st = RequestStore(":memory:")
        await st.init()
        await st.close()
        await st.close()
        assert st._conn is None

    async def test_context_manager(self, make_request):
        """Test scoped acquisition and release."""
        async with RequestStore(":memory:") as st:
            await st.save(make_request())
            assert (await st.stats()).total_count == 1
        assert st._conn is None


class TestStoreSave:
    """Tests for saving requests."""

    async def test_round_trip(self, store, make_request):
        """Test that a saved record comes back equal in every field."""
        request = make_request(
            "r1",
            response_body='{"ok": true}',
            body="a=1",
            error="net::ERR_FAILED",
        )
        await store.save(request)

        results = await store.query(RequestQuery())
        assert results == [request]

    async def test_round_trip_partial_record(self, store, make_request):
        """Test that a never-responded record keeps its defaults."""
        request = make_request(
            "r1",
            status=0,
            response_headers={},
            response_size=0,
            encoded_data_length=None,
        )
        await store.save(request)

        results = await store.query(RequestQuery())
        assert results == [request]

    async def test_round_trip_naive_timestamp(self, store, make_request):
        """Test that a record built with a naive timestamp round-trips equal."""
        request = make_request("r1", timestamp=datetime(2026, 1, 1, 12, 0))
        await store.save(request)

        results = await store.query(RequestQuery())
        assert results == [request]
        assert results[0].timestamp == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    async def test_upsert_last_write_wins(self, store, make_request):
        """Test that saving the same id replaces every column."""
        await store.save(make_request("r1", status=0, error=None))
        await store.save(make_request("r1", status=404, error="gone"))

        results = await store.query(RequestQuery())
        assert len(results) == 1
        assert results[0].status == 404
        assert results[0].error == "gone"


class TestStoreQuery:
    """Tests for predicate queries."""

    @pytest.fixture
    async def populated(self, store, make_request):
        requests = [
            make_request(
                "1",
                type="xhr",
                method="GET",
                url="https://api.example.com/test1",
                status=200,
                timestamp=minutes_ago(40),
                response_headers={"Content-Type": "application/json"},
                response_size=256,
            ),
            make_request(
                "2",
                type="fetch",
                method="POST",
                url="https://api.example.com/test2",
                status=404,
                timestamp=minutes_ago(30),
                response_headers={"content-type": "text/html; charset=utf-8"},
                response_size=64,
            ),
            make_request(
                "3",
                type="xhr",
                method="GET",
                url="https://cdn.other.com/lib_v2.js",
                status=500,
                timestamp=minutes_ago(20),
                response_headers={"Content-Type": "application/json"},
                response_size=512,
                error="Database connection failed",
            ),
            make_request(
                "4",
                type="fetch",
                method="GET",
                url="https://api.example.com/test4",
                status=201,
                timestamp=minutes_ago(10),
                response_headers={},
                response_size=128,
            ),
            make_request(
                "5",
                type="document",
                method="GET",
                url="https://example.com/pending",
                status=0,
                timestamp=minutes_ago(5),
                response_headers={},
                response_size=0,
                encoded_data_length=None,
            ),
        ]
        for request in requests:
            await store.save(request)
        return requests

    async def ids(self, store, **kwargs) -> list[str]:
        return [r.id for r in await store.query(RequestQuery(**kwargs))]

    async def test_empty_query_newest_first(self, store, populated):
        """Test that an empty query returns everything, newest first."""
        assert await self.ids(store) == ["5", "4", "3", "2", "1"]

    async def test_default_limit(self, store, make_request):
        """Test that the default limit caps the result."""
        for i in range(105):
            await store.save(make_request(f"r{i}"))
        assert len(await store.query(RequestQuery())) == 100

    async def test_min_status(self, store, populated):
        """Test the status lower bound; no-status records never match."""
        assert await self.ids(store, min_status=400) == ["3", "2"]

    async def test_status_range(self, store, populated):
        """Test an inclusive status range."""
        assert await self.ids(store, min_status=200, max_status=299) == ["4", "1"]
        assert await self.ids(store, max_status=299) == ["4", "1"]

    async def test_exact_status(self, store, populated):
        """Test the exact status predicate."""
        assert await self.ids(store, status=404) == ["2"]

    async def test_type_and_method(self, store, populated):
        """Test equality predicates, ANDed."""
        assert await self.ids(store, type="xhr") == ["3", "1"]
        assert await self.ids(store, type="fetch", method="POST") == ["2"]
        assert len(await self.ids(store, type="all")) == 5

    async def test_url_substring(self, store, populated):
        """Test the URL substring predicate."""
        assert await self.ids(store, url="api.example.com") == ["4", "2", "1"]
        # LIKE wildcards in the fragment are literal
        assert await self.ids(store, url="lib_v") == ["3"]
        assert await self.ids(store, url="lib%v") == []

    async def test_url_pattern(self, store, populated):
        """Test the URL regular-expression predicate."""
        assert await self.ids(store, url_pattern=r"/test\d$") == ["4", "2", "1"]

    async def test_invalid_url_pattern_matches_nothing(self, store, populated):
        """Test that a bad pattern yields no rows instead of an error."""
        assert await self.ids(store, url_pattern="[") == []

    async def test_time_range(self, store, populated):
        """Test the inclusive time range."""
        start = populated[1].timestamp
        end = populated[3].timestamp
        assert await self.ids(store, start_time=start, end_time=end) == ["4", "3", "2"]

    async def test_response_size_range(self, store, populated):
        """Test the inclusive response size range."""
        assert await self.ids(store, min_response_size=256) == ["3", "1"]
        assert await self.ids(store, min_response_size=64, max_response_size=128) == [
            "4",
            "2",
        ]

    async def test_response_content_type(self, store, populated):
        """Test the Content-Type substring match, header name case-insensitive."""
        assert await self.ids(store, response_content_type="application/json") == [
            "3",
            "1",
        ]
        assert await self.ids(store, response_content_type="text/html") == ["2"]

    async def test_error_substring(self, store, populated):
        """Test the error substring predicate."""
        assert await self.ids(store, error="database") == ["3"]

    async def test_has_error(self, store, populated):
        """Test filtering on the presence of an error."""
        assert await self.ids(store, has_error=True) == ["3"]
        assert await self.ids(store, has_error=False) == ["5", "4", "2", "1"]

    async def test_sort_and_paginate(self, store, populated):
        """Test sorting by response size with limit/offset."""
        assert await self.ids(store, sort_by="response_size", sort_order="asc") == [
            "5",
            "2",
            "4",
            "1",
            "3",
        ]
        assert await self.ids(
            store, sort_by="response_size", sort_order="desc", limit=2, offset=1
        ) == ["1", "4"]

    async def test_sort_by_status(self, store, populated):
        """Test sorting by status, descending by default."""
        assert await self.ids(store, sort_by="status", limit=2) == ["3", "2"]

    async def test_invalid_sort_field(self, store, populated):
        """Test that unknown sort fields are rejected."""
        with pytest.raises(ValueError):
            await store.query(RequestQuery(sort_by="url; DROP TABLE x"))  # type: ignore[arg-type]


class TestStoreStats:
    """Tests for aggregate stats."""

    async def test_stats(self, store, make_request):
        """Test counts grouped by type and status."""
        for i, type in enumerate(["xhr", "xhr", "xhr", "fetch", "fetch"]):
            await store.save(
                make_request(f"r{i}", type=type, status=200 if i % 2 == 0 else 0)
            )

        stats = await store.stats()
        assert stats.total_count == 5
        assert stats.type_stats == {"xhr": 3, "fetch": 2}
        assert stats.status_stats == {200: 3, 0: 2}

    async def test_stats_empty(self, store):
        """Test stats over an empty store."""
        stats = await store.stats()
        assert stats.total_count == 0
        assert stats.type_stats == {}
        assert stats.status_stats == {}


class TestStorePrune:
    """Tests for retention pruning."""

    async def test_prune_removes_old_records(self, store, make_request):
        """Test that only records older than the cutoff are removed."""
        two_days_ago = datetime.now(timezone.utc) - timedelta(days=2)
        await store.save(make_request("old", timestamp=two_days_ago))
        await store.save(make_request("new"))

        assert await store.prune(1) == 1
        assert [r.id for r in await store.query(RequestQuery())] == ["new"]

        assert await store.prune(1) == 0

    async def test_prune_negative_days(self, store):
        """Test that a negative age is rejected."""
        with pytest.raises(ValueError):
            await store.prune(-1)

    async def test_clear(self, store, make_request):
        """Test that clear removes every record."""
        await store.save(make_request("a"))
        await store.save(make_request("b"))
        await store.clear()
        assert (await store.stats()).total_count == 0

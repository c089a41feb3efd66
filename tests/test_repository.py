"""Tests for the offline-first repository and its incremental sync."""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, patch

from localfirst.database import AuthorEntity, Database, SQLiteEntityDao, TopicEntity
from localfirst.datastore import VersionStore
from localfirst.errors import NetworkError, StoreError
from localfirst.kinds import AUTHORS, TOPICS
from localfirst.network import NetworkAuthor, NetworkTopic, RemoteSource
from localfirst.sync import OfflineFirstRepository
from localfirst.utils import first


def make_authors(count: int, start: int = 0) -> list[NetworkAuthor]:
    return [
        NetworkAuthor(
            id=str(i),
            name=f"Author {i}",
            image_url=f"https://example.com/authors/{i}.png",
            twitter=f"@author{i}",
            bio=f"Bio of author {i}",
        )
        for i in range(start, start + count)
    ]


def make_topics(count: int) -> list[NetworkTopic]:
    return [
        NetworkTopic(id=f"t{i}", name=f"Topic {i}", short_description="short")
        for i in range(count)
    ]


class FakeNetwork(RemoteSource):
    """In-memory remote serving fixed collections."""

    def __init__(self):
        self.collections = {
            "authors": make_authors(10),
            "topics": make_topics(4),
        }
        self.fetch_count = 0

    async def fetch_all(self, kind):
        self.fetch_count += 1
        return list(self.collections[kind.remote_path])


@pytest.fixture
def database():
    """Create an in-memory database."""
    db = Database(":memory:")
    db.connect()
    yield db
    db.close()


@pytest.fixture
def author_dao(database):
    return SQLiteEntityDao(database, AuthorEntity)


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def versions(tmp_path):
    return VersionStore(tmp_path / "preferences.json")


@pytest.fixture
def subject(author_dao, network, versions):
    """Authors repository under test."""
    return OfflineFirstRepository(
        kind=AUTHORS,
        dao=author_dao,
        network=network,
        versions=versions,
    )


def remote_ids(network: FakeNetwork, start: int = 0) -> list[str]:
    return [a.as_entity().id for a in network.collections["authors"][start:]]


class TestStream:
    """Tests for the live read path."""

    @pytest.mark.asyncio
    async def test_stream_is_backed_by_dao(self, subject, author_dao):
        """Test the first emission equals the DAO content mapped to external models."""
        await author_dao.upsert_all([AuthorEntity(id="7", name="Seven")])

        expected = [e.as_external_model() for e in await first(author_dao.stream_all())]
        emitted = await first(subject.stream())

        assert emitted == expected
        assert [a.id for a in emitted] == ["7"]
        assert emitted[0].name == "Seven"

    @pytest.mark.asyncio
    async def test_stream_empty_store(self, subject):
        """Test an empty store emits an empty list."""
        assert await first(subject.stream()) == []

    @pytest.mark.asyncio
    async def test_stream_is_lazy(self, subject, database):
        """Test nothing subscribes until the stream is iterated."""
        stream = subject.stream()

        assert not database.has_observers("authors")

        await stream.__anext__()
        assert database.has_observers("authors")

        await stream.aclose()
        assert not database.has_observers("authors")

    @pytest.mark.asyncio
    async def test_stream_emits_after_sync(self, subject):
        """Test the stream re-emits the collection once sync commits."""
        stream = subject.stream()
        try:
            assert await stream.__anext__() == []

            await subject.sync()

            updated = await asyncio.wait_for(stream.__anext__(), timeout=1)
            assert len(updated) == 10
        finally:
            await stream.aclose()

    @pytest.mark.asyncio
    async def test_stream_survives_sync_failure(self, subject, network):
        """Test a failing sync does not end an open stream."""
        stream = subject.stream()
        try:
            await stream.__anext__()

            with patch.object(
                network, "fetch_all", new=AsyncMock(side_effect=NetworkError("down"))
            ):
                with pytest.raises(NetworkError):
                    await subject.sync()

            await subject.sync()

            updated = await asyncio.wait_for(stream.__anext__(), timeout=1)
            assert len(updated) == 10
        finally:
            await stream.aclose()

    @pytest.mark.asyncio
    async def test_stream_is_restartable(self, subject):
        """Test a new subscriber starts from the current content."""
        assert await first(subject.stream()) == []

        await subject.sync()

        assert len(await first(subject.stream())) == 10


class TestSync:
    """Tests for the incremental sync protocol."""

    @pytest.mark.asyncio
    async def test_sync_pulls_from_network(self, subject, network, author_dao, versions):
        """Test a fresh sync applies the whole remote collection."""
        result = await subject.sync()

        assert author_dao.get_ids() == remote_ids(network)
        assert versions.get_versions().get("author") == 10
        assert result.previous_version == 0
        assert result.version == 10
        assert result.applied == 10
        assert result.changed

    @pytest.mark.asyncio
    async def test_incremental_sync_pulls_from_network(
        self, subject, network, author_dao, versions
    ):
        """Test only items past the stored version are applied."""
        await versions.update_versions(lambda v: v.copy_with("author", 5))

        result = await subject.sync()

        # The first 5 items are treated as unchanged
        assert author_dao.get_ids() == remote_ids(network, start=5)
        assert versions.get_versions().get("author") == 10
        assert result.applied == 5

    @pytest.mark.asyncio
    async def test_sync_no_op_when_version_past_remote(
        self, subject, author_dao, versions
    ):
        """Test a version at or past the remote length writes nothing."""
        await versions.update_version("author", 12)

        with patch.object(
            author_dao, "upsert_all", new=AsyncMock(wraps=author_dao.upsert_all)
        ) as upsert:
            result = await subject.sync()

        upsert.assert_not_awaited()
        assert result.applied == 0
        assert result.version == 12
        assert versions.get_versions().get("author") == 12
        assert author_dao.get_all() == []

    @pytest.mark.asyncio
    async def test_sync_is_idempotent(self, subject, author_dao):
        """Test a second sync without remote changes makes no mutation."""
        with patch.object(
            author_dao, "upsert_all", new=AsyncMock(wraps=author_dao.upsert_all)
        ) as upsert:
            first_result = await subject.sync()
            second_result = await subject.sync()

        assert upsert.await_count == 1
        assert first_result.applied == 10
        assert second_result.applied == 0
        assert second_result.version == 10

    @pytest.mark.asyncio
    async def test_sync_picks_up_appended_items(
        self, subject, network, author_dao, versions
    ):
        """Test items appended to the remote are applied on the next sync."""
        await subject.sync()
        network.collections["authors"].extend(make_authors(2, start=10))

        result = await subject.sync()

        assert result.applied == 2
        assert result.previous_version == 10
        assert versions.get_versions().get("author") == 12
        assert author_dao.count() == 12

    @pytest.mark.asyncio
    async def test_sync_keeps_existing_entities(self, subject, author_dao):
        """Test upserts are additive by id."""
        await author_dao.upsert_all([AuthorEntity(id="local-only", name="Local")])

        await subject.sync()

        ids = author_dao.get_ids()
        assert "local-only" in ids
        assert len(ids) == 11

    @pytest.mark.asyncio
    async def test_sync_overwrites_by_id(self, subject, author_dao):
        """Test the network version of an entity wins."""
        await author_dao.upsert_all([AuthorEntity(id="3", name="Stale name")])

        await subject.sync()

        authors = {a.id: a for a in author_dao.get_all()}
        assert authors["3"].name == "Author 3"
        assert len(authors) == 10

    @pytest.mark.asyncio
    async def test_kinds_have_independent_versions(
        self, subject, database, network, versions
    ):
        """Test syncing topics leaves the author version alone."""
        topics = OfflineFirstRepository(
            kind=TOPICS,
            dao=SQLiteEntityDao(database, TopicEntity),
            network=network,
            versions=versions,
        )

        await topics.sync()

        current = versions.get_versions()
        assert current.get("topic") == 4
        assert current.get("author") == 0
        assert [t.id for t in await first(topics.stream())] == ["t0", "t1", "t2", "t3"]
        assert await first(subject.stream()) == []


class TestSyncFailures:
    """Tests for all-or-nothing behavior on failure."""

    @pytest.mark.asyncio
    async def test_negative_stored_version_fails_without_mutation(
        self, subject, author_dao, versions
    ):
        """Test a corrupt negative version is reported, not used as a tail offset."""
        versions.path.write_text(json.dumps({"change_list_versions": {"author": -3}}))

        with pytest.raises(StoreError):
            await subject.sync()

        assert author_dao.get_all() == []
        assert json.loads(versions.path.read_text())["change_list_versions"]["author"] == -3

    @pytest.mark.asyncio
    async def test_network_failure_leaves_state_unchanged(
        self, subject, network, author_dao, versions
    ):
        """Test a failed fetch mutates nothing and reports NetworkError."""
        with patch.object(
            network, "fetch_all", new=AsyncMock(side_effect=NetworkError("offline"))
        ):
            with pytest.raises(NetworkError):
                await subject.sync()

        assert author_dao.get_all() == []
        assert versions.get_versions().get("author") == 0

    @pytest.mark.asyncio
    async def test_store_failure_does_not_advance_version(
        self, subject, author_dao, versions
    ):
        """Test a failed upsert leaves the version untouched."""
        with patch.object(
            author_dao, "upsert_all", new=AsyncMock(side_effect=StoreError("disk full"))
        ):
            with pytest.raises(StoreError):
                await subject.sync()

        assert versions.get_versions().get("author") == 0

    @pytest.mark.asyncio
    async def test_version_write_failure_is_replayed(
        self, subject, author_dao, versions
    ):
        """Test data may end up ahead of the version and the next sync re-applies it."""
        with patch.object(
            versions, "update_version", new=AsyncMock(side_effect=StoreError("readonly"))
        ):
            with pytest.raises(StoreError):
                await subject.sync()

        assert author_dao.count() == 10
        assert versions.get_versions().get("author") == 0

        result = await subject.sync()

        assert result.applied == 10
        assert author_dao.count() == 10
        assert versions.get_versions().get("author") == 10

    @pytest.mark.asyncio
    async def test_fetch_timeout_raises_network_error(
        self, subject, network, author_dao, versions
    ):
        """Test a fetch slower than the timeout fails the sync."""

        async def slow_fetch(kind):
            await asyncio.sleep(1)
            return []

        with patch.object(network, "fetch_all", new=slow_fetch):
            with pytest.raises(NetworkError):
                await subject.sync(timeout=0.01)

        assert author_dao.get_all() == []
        assert versions.get_versions().get("author") == 0

    @pytest.mark.asyncio
    async def test_cancelled_sync_leaves_state_unchanged(
        self, subject, network, author_dao, versions
    ):
        """Test cancelling during the fetch leaves no trace and releases the lock."""
        release = asyncio.Event()

        async def blocked_fetch(kind):
            await release.wait()
            return []

        with patch.object(network, "fetch_all", new=blocked_fetch):
            task = asyncio.create_task(subject.sync())
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert author_dao.get_all() == []
        assert versions.get_versions().get("author") == 0
        assert not versions.lock("author").locked()

        result = await subject.sync()
        assert result.version == 10


class TestSyncConcurrency:
    """Tests for per-kind mutual exclusion."""

    @pytest.mark.asyncio
    async def test_concurrent_syncs_do_not_interleave(
        self, subject, network, author_dao, versions
    ):
        """Test a second sync waits for the first and then sees its version."""
        results = await asyncio.gather(subject.sync(), subject.sync())

        assert sorted(r.applied for r in results) == [0, 10]
        assert network.fetch_count == 2
        assert author_dao.count() == 10
        assert versions.get_versions().get("author") == 10

    @pytest.mark.asyncio
    async def test_repositories_share_kind_lock(
        self, subject, database, network, versions
    ):
        """Test two repositories of one kind serialize on the shared VersionStore."""
        other = OfflineFirstRepository(
            kind=AUTHORS,
            dao=SQLiteEntityDao(database, AuthorEntity),
            network=network,
            versions=versions,
        )

        results = await asyncio.gather(subject.sync(), other.sync())

        assert sum(r.applied for r in results) == 10
        assert versions.get_versions().get("author") == 10

"""Tests for the persistence gateway and snapshot backends."""

import asyncio
import json
import logging

import pytest

from pairwise_elo import (
    FolderParams,
    JsonFileBackend,
    MatchOutcome,
    MemoryBackend,
    PersistenceError,
    PersistenceGateway,
    RatingStore,
    SaveState,
    create_definition,
    get_backend,
)

KEY = "folder:notes"
DEBOUNCE = 0.05


def matches_in(data: bytes, item_id: str = "a") -> int:
    """Match count of one player inside a written snapshot."""
    raw = json.loads(data)
    return raw["store"]["cohorts"][KEY]["players"][item_id]["matches"]


# ============================================================================
# Debounce Tests
# ============================================================================


class TestDebounce:
    """Tests for coalescing scheduled saves."""

    @pytest.mark.asyncio
    async def test_burst_coalesces_into_one_write(self):
        store = RatingStore()
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend, debounce_seconds=DEBOUNCE)

        for _ in range(10):
            store.apply_match(KEY, "a", "b", MatchOutcome.FIRST_WINS)
            gateway.schedule_save()

        assert gateway.state is SaveState.PENDING
        assert backend.writes == []

        await asyncio.sleep(DEBOUNCE * 4)

        assert len(backend.writes) == 1
        assert matches_in(backend.writes[0]) == 10
        assert gateway.state is SaveState.IDLE
        assert gateway.write_count == 1

    @pytest.mark.asyncio
    async def test_schedule_refreshes_deadline(self):
        store = RatingStore()
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend, debounce_seconds=0.1)

        gateway.schedule_save()
        await asyncio.sleep(0.06)
        gateway.schedule_save()
        await asyncio.sleep(0.06)

        # 120 ms after the first call, 60 ms after the second
        assert backend.writes == []

        await asyncio.sleep(0.15)
        assert len(backend.writes) == 1

    @pytest.mark.asyncio
    async def test_snapshot_taken_at_write_time(self):
        """Changes made after scheduling are included in the write."""
        store = RatingStore()
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend, debounce_seconds=DEBOUNCE)

        store.apply_match(KEY, "a", "b", MatchOutcome.DRAW)
        gateway.schedule_save()
        store.apply_match(KEY, "a", "b", MatchOutcome.DRAW)

        await asyncio.sleep(DEBOUNCE * 4)
        assert matches_in(backend.writes[-1]) == 2


# ============================================================================
# Flush Tests
# ============================================================================


class TestFlush:
    """Tests for immediate writes."""

    @pytest.mark.asyncio
    async def test_flush_now_cancels_pending(self):
        store = RatingStore()
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend, debounce_seconds=DEBOUNCE)

        store.apply_match(KEY, "a", "b", MatchOutcome.FIRST_WINS)
        gateway.schedule_save()
        await gateway.flush_now()

        assert len(backend.writes) == 1
        assert gateway.state is SaveState.IDLE

        await asyncio.sleep(DEBOUNCE * 3)
        assert len(backend.writes) == 1

    @pytest.mark.asyncio
    async def test_close_flushes_pending(self):
        store = RatingStore()
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend, debounce_seconds=10)

        store.apply_match(KEY, "a", "b", MatchOutcome.FIRST_WINS)
        gateway.schedule_save()
        await gateway.close()

        assert len(backend.writes) == 1
        assert gateway.state is SaveState.IDLE

    @pytest.mark.asyncio
    async def test_close_without_pending_does_not_write(self):
        backend = MemoryBackend()
        gateway = PersistenceGateway(RatingStore(), backend)
        await gateway.close()
        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_writing_state(self):
        store = RatingStore()
        backend = MemoryBackend(delay=0.05)
        gateway = PersistenceGateway(store, backend)

        task = asyncio.create_task(gateway.flush_now())
        await asyncio.sleep(0.01)
        assert gateway.state is SaveState.WRITING

        await task
        assert gateway.state is SaveState.IDLE


# ============================================================================
# Ordering Tests
# ============================================================================


class TestOrdering:
    """Tests for the single write lane."""

    @pytest.mark.asyncio
    async def test_writes_never_overlap(self):
        store = RatingStore()
        backend = MemoryBackend(delay=0.02)
        gateway = PersistenceGateway(store, backend)

        store.apply_match(KEY, "a", "b", MatchOutcome.DRAW)
        await asyncio.gather(*(gateway.flush_now() for _ in range(5)))

        assert len(backend.writes) == 5
        assert backend.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_writes_land_in_start_order(self):
        """The last write to land always reflects the newest state."""
        store = RatingStore()
        backend = MemoryBackend(delay=0.02)
        gateway = PersistenceGateway(store, backend)

        tasks = []
        for _ in range(3):
            store.apply_match(KEY, "a", "b", MatchOutcome.DRAW)
            tasks.append(asyncio.create_task(gateway.flush_now()))
            await asyncio.sleep(0)
        await asyncio.gather(*tasks)

        written = [matches_in(data) for data in backend.writes]
        assert written[0] == 1
        assert written == sorted(written)
        assert written[-1] == 3
        assert backend.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_timer_write_waits_for_flush(self):
        store = RatingStore()
        backend = MemoryBackend(delay=0.05)
        gateway = PersistenceGateway(store, backend, debounce_seconds=0.01)

        store.apply_match(KEY, "a", "b", MatchOutcome.DRAW)
        flush = asyncio.create_task(gateway.flush_now())
        await asyncio.sleep(0)
        store.apply_match(KEY, "a", "b", MatchOutcome.DRAW)
        gateway.schedule_save()

        await flush
        await gateway.close()

        assert [matches_in(data) for data in backend.writes] == [1, 2]
        assert backend.max_in_flight == 1


# ============================================================================
# Failure Tests
# ============================================================================


class TestFailures:
    """Tests for failed writes."""

    @pytest.mark.asyncio
    async def test_failed_write_is_recorded_not_raised(self, caplog):
        store = RatingStore()
        backend = MemoryBackend(fail_writes=1)
        gateway = PersistenceGateway(store, backend)

        with caplog.at_level(logging.ERROR):
            await gateway.flush_now()

        assert gateway.failure_count == 1
        assert "simulated write failure" in gateway.last_error
        assert backend.writes == []
        assert "Snapshot write failed" in caplog.text

    @pytest.mark.asyncio
    async def test_next_save_retries(self):
        store = RatingStore()
        backend = MemoryBackend(fail_writes=1)
        gateway = PersistenceGateway(store, backend, debounce_seconds=DEBOUNCE)

        store.apply_match(KEY, "a", "b", MatchOutcome.FIRST_WINS)
        gateway.schedule_save()
        await asyncio.sleep(DEBOUNCE * 4)
        assert gateway.failure_count == 1

        gateway.schedule_save()
        await asyncio.sleep(DEBOUNCE * 4)

        assert len(backend.writes) == 1
        assert gateway.last_error is None
        assert store.get_player(KEY, "a").rating == 1512.0

    @pytest.mark.asyncio
    async def test_unencodable_snapshot_is_recorded_not_raised(self, caplog):
        """Encoding failures take the same path as storage failures."""
        store = RatingStore()
        store.upsert_cohort_def(
            create_definition(FolderParams(path="n"), frontmatter_overrides={"when": object()})
        )
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend)

        with caplog.at_level(logging.ERROR):
            await gateway.flush_now()

        assert gateway.failure_count == 1
        assert gateway.last_error is not None
        assert backend.writes == []
        assert "Snapshot write failed" in caplog.text
        assert gateway.state is SaveState.IDLE

        store.delete_cohort("folder:n")
        await gateway.flush_now()
        assert len(backend.writes) == 1
        assert gateway.last_error is None

    @pytest.mark.asyncio
    async def test_unencodable_snapshot_on_timer(self):
        store = RatingStore()
        store.upsert_cohort_def(
            create_definition(FolderParams(path="n"), frontmatter_overrides={"when": object()})
        )
        gateway = PersistenceGateway(store, MemoryBackend(), debounce_seconds=DEBOUNCE)

        gateway.schedule_save()
        await asyncio.sleep(DEBOUNCE * 4)
        await gateway.close()

        assert gateway.failure_count == 1


# ============================================================================
# Load Tests
# ============================================================================


class TestLoad:
    """Tests for loading the stored snapshot."""

    @pytest.mark.asyncio
    async def test_missing_snapshot_writes_baseline(self):
        store = RatingStore()
        backend = MemoryBackend()
        gateway = PersistenceGateway(store, backend)

        await gateway.load()

        assert len(backend.writes) == 1
        assert json.loads(backend.writes[0])["store"]["cohorts"] == {}

    @pytest.mark.asyncio
    async def test_malformed_snapshot_writes_baseline(self):
        store = RatingStore()
        backend = MemoryBackend(data=b"{broken")
        gateway = PersistenceGateway(store, backend)

        await gateway.load()

        assert len(backend.writes) == 1
        assert store.store.cohorts == {}

    @pytest.mark.asyncio
    async def test_valid_snapshot_loads_without_write(self):
        source = RatingStore()
        source.apply_match(KEY, "a", "b", MatchOutcome.FIRST_WINS)

        store = RatingStore()
        backend = MemoryBackend(data=source.serialize())
        gateway = PersistenceGateway(store, backend)

        await gateway.load()

        assert backend.writes == []
        assert store.get_player(KEY, "a").rating == 1512.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "settings",
        [
            {"kFactor": 500},
            {"heuristics": {"provisional": {"matches": 0}}},
            {"persistence": {"debounceSeconds": 120}},
        ],
    )
    async def test_invalid_settings_keep_ratings(self, settings):
        """A baseline is rewritten with default settings and the old ratings."""
        source = RatingStore()
        source.apply_match(KEY, "a", "b", MatchOutcome.FIRST_WINS)
        snapshot = json.loads(source.serialize())
        snapshot["settings"].update(settings)

        store = RatingStore()
        backend = MemoryBackend(data=json.dumps(snapshot).encode("utf-8"))
        await PersistenceGateway(store, backend).load()

        assert store.get_player(KEY, "a").rating == 1512.0
        assert len(backend.writes) == 1
        baseline = json.loads(backend.writes[0])
        assert baseline["settings"]["kFactor"] == 24
        assert matches_in(backend.writes[0]) == 1
        assert backend.data == backend.writes[0]


# ============================================================================
# Backend Tests
# ============================================================================


class TestJsonFileBackend:
    """Tests for JsonFileBackend."""

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "data.json")
        assert await backend.load_snapshot() is None

    @pytest.mark.asyncio
    async def test_write_then_load(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "nested" / "data.json")
        await backend.write_snapshot(b'{"version": 1}')

        assert await backend.load_snapshot() == b'{"version": 1}'
        assert not (tmp_path / "nested" / "data.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_write_replaces(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "data.json")
        await backend.write_snapshot(b"first")
        await backend.write_snapshot(b"second")
        assert (tmp_path / "data.json").read_bytes() == b"second"

    @pytest.mark.asyncio
    async def test_write_failure_raises_persistence_error(self, tmp_path):
        target = tmp_path / "data.json"
        target.mkdir()
        backend = JsonFileBackend(target)

        with pytest.raises(PersistenceError) as exc_info:
            await backend.write_snapshot(b"{}")
        assert exc_info.value.path == str(target)

    @pytest.mark.asyncio
    async def test_gateway_round_trip(self, tmp_path):
        path = tmp_path / "elo.json"
        store = RatingStore()
        gateway = PersistenceGateway(store, JsonFileBackend(path))
        await gateway.load()

        store.apply_match(KEY, "a", "b", MatchOutcome.SECOND_WINS)
        await gateway.flush_now()

        reloaded = RatingStore()
        await PersistenceGateway(reloaded, JsonFileBackend(path)).load()
        assert reloaded.get_player(KEY, "b").wins == 1


class TestGetBackend:
    """Tests for the backend factory."""

    def test_memory(self):
        backend = get_backend("memory")
        assert isinstance(backend, MemoryBackend)
        assert backend.name == "memory"

    def test_json_file(self, tmp_path):
        backend = get_backend("json-file", path=tmp_path / "x.json")
        assert isinstance(backend, JsonFileBackend)
        assert backend.name == "json-file"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            get_backend("sqlite")

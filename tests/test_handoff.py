import asyncio
import json

from matchfinder import config
from matchfinder.config import SourceProduct
from matchfinder.handoff import JsonFileHandoffStore, MemoryHandoffStore, make_handoff_store


def _source():
    return SourceProduct(title="Acme Blue Widget", brand="Acme", price=9.99)


def test_memory_store_put_get_clear():
    store = MemoryHandoffStore()

    async def scenario():
        await store.put("req-1", _source())
        assert await store.is_in_progress("req-1")
        assert await store.get_source_product("req-1") == _source()
        assert await store.active_requests() == ["req-1"]

        await store.clear("req-1")
        await store.clear("req-1")  # second clear is a no-op
        assert not await store.is_in_progress("req-1")
        assert await store.get_source_product("req-1") is None
        assert await store.active_requests() == []

    asyncio.run(scenario())


def test_entries_are_keyed_by_request_id():
    store = MemoryHandoffStore()

    async def scenario():
        await store.put("a", SourceProduct(title="First"))
        await store.put("b", SourceProduct(title="Second"))
        await store.clear("a")
        assert (await store.get_source_product("b")).title == "Second"
        assert await store.active_requests() == ["b"]

    asyncio.run(scenario())


def test_json_store_persists_with_original_key_names(tmp_path):
    path = tmp_path / "handoff.json"
    store = JsonFileHandoffStore(path)

    asyncio.run(store.put("req-1", _source()))
    data = json.loads(path.read_text(encoding="utf-8"))
    entry = data["req-1"]
    assert entry[config.HANDOFF_IN_PROGRESS_KEY] is True
    assert entry[config.HANDOFF_SOURCE_KEY]["title"] == "Acme Blue Widget"
    assert set(entry) == {"sourceProductForMatch", "matchInProgress"}

    # a second store over the same file sees the entry
    other = JsonFileHandoffStore(path)
    assert asyncio.run(other.get_source_product("req-1")) == _source()

    asyncio.run(store.clear("req-1"))
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_json_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "handoff.json"
    path.write_text("{oops", encoding="utf-8")
    store = JsonFileHandoffStore(path)
    assert asyncio.run(store.active_requests()) == []


def test_make_handoff_store_backends():
    assert isinstance(make_handoff_store("memory"), MemoryHandoffStore)
    assert isinstance(make_handoff_store("json"), JsonFileHandoffStore)
    assert isinstance(make_handoff_store("redis"), MemoryHandoffStore)


def test_json_store_file_access_runs_in_worker_thread(tmp_path, monkeypatch):
    import matchfinder.handoff as handoff_mod

    calls = []
    real_to_thread = handoff_mod.asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        calls.append(func.__name__)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(handoff_mod.asyncio, "to_thread", recording_to_thread)
    store = JsonFileHandoffStore(tmp_path / "handoff.json")

    async def scenario():
        await store.put("req-1", _source())
        assert await store.is_in_progress("req-1")
        await store.clear("req-1")

    asyncio.run(scenario())
    assert calls.count("_write_state") == 2
    assert calls.count("_read_state") == 3

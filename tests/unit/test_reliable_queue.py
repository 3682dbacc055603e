"""Unit tests for the queue facade and transaction protocol."""

from __future__ import annotations

import json
import re

import pytest

from reliqueue.core.exceptions import (
    ConfigError,
    DecodeError,
    EncodeError,
    HandlerError,
    StoreError,
)
from reliqueue.queue.memory_store import MemoryStore
from reliqueue.queue.redis_store import RedisStore
from reliqueue.queue.reliable import ReliableQueue
from reliqueue.resilience.retry import RetryPolicy, invoke


async def snafu(value):
    raise RuntimeError("snafu")


async def index_members(store: MemoryStore, key: str = "foo:tx") -> list[str]:
    return [member async for member in store.sscan_iter(key)]


class TestConstruction:
    """Tests for queue options."""

    def test_missing_key_raises(self, memory_store):
        with pytest.raises(ConfigError):
            ReliableQueue("", memory_store)

    def test_none_key_raises(self, memory_store):
        with pytest.raises(ConfigError):
            ReliableQueue(None, memory_store)  # type: ignore[arg-type]

    def test_invalid_timeout_raises(self, memory_store):
        with pytest.raises(ConfigError) as exc_info:
            ReliableQueue("foo", memory_store, timeout=0)
        assert "timeout" in exc_info.value.details

    def test_default_key_layout(self, memory_store):
        queue = ReliableQueue("foo", memory_store)
        assert queue.options.recover_key == "foo:tx"
        assert queue.options.delim == ":"
        assert queue.options.timeout == 3600
        assert queue.options.recover_timeout == 60
        assert queue.dead_letters is None

    def test_custom_delimiter(self, memory_store):
        queue = ReliableQueue("foo", memory_store, delim="/")
        assert queue.options.recover_key == "foo/tx"
        assert queue.options.lock_key("foo/tx/abc") == "foo/tx/abc/lock"

    def test_url_builds_redis_store(self):
        queue = ReliableQueue("foo", "redis://localhost:6379/9")
        assert isinstance(queue.store, RedisStore)

    def test_redis_client_builds_redis_store(self):
        import redis.asyncio as redis

        queue = ReliableQueue("foo", redis.Redis())
        assert isinstance(queue.store, RedisStore)

    def test_unsupported_store_raises(self):
        with pytest.raises(TypeError):
            ReliableQueue("foo", 42)  # type: ignore[arg-type]


@pytest.mark.asyncio
class TestPushShift:
    """Tests for push and shift without a handler."""

    async def test_push_adds_to_head(self, queue, memory_store, sample_value):
        await queue.push(sample_value)
        await queue.push("other")

        assert await memory_store.lindex("foo", 0) == json.dumps("other")
        assert await memory_store.lindex("foo", -1) == json.dumps(sample_value)

    async def test_round_trip(self, queue, sample_value):
        await queue.push(sample_value)
        assert await queue.shift() == sample_value

    async def test_fifo_order(self, queue):
        await queue.push("a")
        await queue.push("b")

        assert await queue.shift() == "a"
        assert await queue.shift() == "b"

    async def test_shift_empty_returns_none(self, queue):
        assert await queue.shift() is None

    async def test_shift_decreases_length(self, queue, sample_value):
        await queue.push(sample_value)
        await queue.push("other")
        assert await queue.length() == 2

        await queue.shift()
        assert await queue.length() == 1

    async def test_push_unencodable_raises(self, queue):
        with pytest.raises(EncodeError):
            await queue.push({"when": object()})
        assert await queue.length() == 0

    async def test_shift_undecodable_dead_letters(self, queue, memory_store):
        await memory_store.lpush("foo", "{not json")

        with pytest.raises(DecodeError):
            await queue.shift()

        records = await queue.dead_letters.list()
        assert len(records) == 1
        assert records[0]["value"] == "{not json"
        assert records[0]["err"]["type"] == "DecodeError"
        assert "{not json" not in records[0]["err"]["message"]

    async def test_store_errors_propagate(self, sample_value):
        class BrokenStore(MemoryStore):
            async def lpush(self, key, value):
                raise StoreError("Redis lpush failed: connection refused")

        queue = ReliableQueue("foo", BrokenStore())
        with pytest.raises(StoreError):
            await queue.push(sample_value)


@pytest.mark.asyncio
class TestShiftWithHandler:
    """Tests for shift with a handler."""

    async def test_handler_receives_tail_value(self, queue, memory_store, sample_value):
        seen = []
        await queue.push(sample_value)
        await queue.push("other")

        await queue.shift(seen.append)

        assert seen == [sample_value]
        assert await queue.length() == 1
        assert await memory_store.rpop("foo") == json.dumps("other")

    async def test_returns_value_not_handler_result(self, queue, sample_value):
        await queue.push(sample_value)

        result = await queue.shift(lambda value: "handler result")

        assert result == sample_value

    async def test_async_handler(self, queue, sample_value):
        seen = []

        async def handler(value):
            seen.append(value)
            return "ignored"

        await queue.push(sample_value)
        assert await queue.shift(handler) == sample_value
        assert seen == [sample_value]

    async def test_success_leaves_no_residual_keys(self, memory_store, sample_value):
        queue = ReliableQueue("foo", memory_store)
        await queue.push(sample_value)

        await queue.shift(lambda value: None)

        assert memory_store.keys() == []

    async def test_empty_queue_returns_none(self, memory_store):
        calls = []
        queue = ReliableQueue("foo", memory_store)

        assert await queue.shift(calls.append) is None
        assert calls == []
        assert memory_store.keys() == []

    async def test_handler_error_raised(self, queue, sample_value):
        await queue.push(sample_value)

        with pytest.raises(HandlerError) as exc_info:
            await queue.shift(snafu)

        assert isinstance(exc_info.value.original, RuntimeError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "snafu" in str(exc_info.value)

    async def test_failure_writes_one_dead_letter(self, queue, memory_store, sample_value):
        await queue.push(sample_value)

        with pytest.raises(HandlerError):
            await queue.shift(snafu)

        assert await memory_store.llen("graveyard") == 1
        info = json.loads(await memory_store.lindex("graveyard", 0))
        assert "snafu" in info["err"]["message"]
        assert info["err"]["type"] == "RuntimeError"
        assert info["value"] == json.dumps(sample_value)

    async def test_failure_without_dead_key(self, memory_store, sample_value):
        queue = ReliableQueue("foo", memory_store)
        await queue.push(sample_value)

        with pytest.raises(HandlerError):
            await queue.shift(snafu)

        assert await memory_store.llen("graveyard") == 0

    async def test_failure_leaves_transaction_and_lock(self, queue, memory_store, sample_value):
        await queue.push(sample_value)

        with pytest.raises(HandlerError):
            await queue.shift(snafu)

        [transaction_key] = await index_members(memory_store)
        assert re.fullmatch(r"foo:tx:[0-9a-f]{16}", transaction_key)
        assert await memory_store.lindex(transaction_key, 0) == json.dumps(sample_value)
        assert await memory_store.get(f"{transaction_key}:lock") == "locked"
        assert await queue.length() == 0

    async def test_failed_value_recovered_after_lock_expires(
        self, memory_store, clock, sample_value
    ):
        queue = ReliableQueue("foo", memory_store, timeout=30, recover_timeout=0, clock=clock)
        await queue.push(sample_value)

        with pytest.raises(HandlerError):
            await queue.shift(snafu)

        assert await queue.recover() == 0
        clock.advance(31)
        assert await queue.recover() == 1

        assert await queue.shift() == sample_value
        assert await index_members(memory_store) == []

    async def test_decode_failure_skips_handler(self, queue, memory_store):
        calls = []
        await memory_store.lpush("foo", "{not json")

        with pytest.raises(DecodeError):
            await queue.shift(calls.append)

        assert calls == []
        records = await queue.dead_letters.list()
        assert len(records) == 1
        assert records[0]["value"] == "{not json"

    async def test_decode_failure_not_retried(self, memory_store):
        attempts = []

        async def counting_retry(fn):
            attempts.append(1)
            return await invoke(fn)

        queue = ReliableQueue("foo", memory_store, retry=counting_retry)
        await memory_store.lpush("foo", "{not json")

        with pytest.raises(DecodeError):
            await queue.shift(lambda value: None)

        assert attempts == []

    async def test_retry_gets_fresh_copy(self, memory_store, sample_value):
        seen = []

        def mutate_then_fail(value):
            seen.append(json.dumps(value))
            value["foo"] = "mutated"
            if len(seen) == 1:
                raise RuntimeError("first attempt")

        queue = ReliableQueue(
            "foo",
            memory_store,
            retry=RetryPolicy(max_attempts=2, base_delay=0, max_delay=0),
        )
        await queue.push(sample_value)

        assert await queue.shift(mutate_then_fail) == sample_value
        assert seen == [json.dumps(sample_value)] * 2
        assert memory_store.keys() == []

    async def test_retries_exhausted_raise_handler_error(self, queue, sample_value):
        attempts = []

        def always_fail(value):
            attempts.append(value)
            raise ValueError("still broken")

        queue_with_retry = ReliableQueue(
            "foo",
            queue.store,
            dead_key="graveyard",
            retry=RetryPolicy(max_attempts=3, base_delay=0, max_delay=0),
        )
        await queue_with_retry.push(sample_value)

        with pytest.raises(HandlerError):
            await queue_with_retry.shift(always_fail)

        assert len(attempts) == 3
        assert await queue_with_retry.dead_letters.count() == 1

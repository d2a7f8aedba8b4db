"""Unit tests for FeatureFlagEngine point reads, registries and reporting."""

from __future__ import annotations

import asyncio

import pytest
import structlog

from mp_flags.application.feature_flags import (
    DEFAULT_SOURCE,
    FeatureFlagEngine,
    FunctionInterceptor,
    ImmutableFlagSpec,
    MutableFlagSpec,
    StreamingFlagSpec,
)
from mp_flags.application.feature_flags.stream import FlagStream
from mp_flags.kernel.errors import EngineClosedError
from mp_flags.kernel.types import ABSENT
from mp_flags.testing.fakes import RecordingFlagLogger, ScriptedFeatureFlagSource, SuffixInterceptor


class _BrokenLogger:
    def info(self, message: str) -> None:
        raise RuntimeError("sink down")


class _ExplodingInterceptor(SuffixInterceptor):
    def __init__(self) -> None:
        super().__init__("!", id="exploding")

    async def intercept_mutable(self, engine, spec, source, value):
        raise ValueError("broken transform")


# ---------------------------------------------------------------------------
# Immutable specs
# ---------------------------------------------------------------------------


class TestImmutableResolution:
    def test_returns_declared_value(self) -> None:
        engine = FeatureFlagEngine()
        assert engine.value(ImmutableFlagSpec("banner", "hello")) == "hello"

    def test_never_consults_sources(self) -> None:
        source = ScriptedFeatureFlagSource(values={"banner": "remote"})
        engine = FeatureFlagEngine([source])
        assert engine.value(ImmutableFlagSpec("banner", "hello")) == "hello"
        assert source.fetch_calls == []

    def test_interceptors_still_run(self) -> None:
        interceptor = SuffixInterceptor("-debug")
        engine = FeatureFlagEngine(interceptors=[interceptor])
        assert engine.value(ImmutableFlagSpec("banner", "hello")) == "hello-debug"
        assert interceptor.calls == [("banner", None, "hello")]

    def test_get_dispatches_to_value(self) -> None:
        engine = FeatureFlagEngine()
        assert engine.get(ImmutableFlagSpec("n", 7)) == 7


# ---------------------------------------------------------------------------
# Mutable specs
# ---------------------------------------------------------------------------


class TestMutableResolution:
    def test_default_without_sources(self) -> None:
        engine = FeatureFlagEngine()
        assert asyncio.run(engine.fetch(MutableFlagSpec("retries", 3))) == 3

    def test_default_folded_through_interceptors(self) -> None:
        interceptor = SuffixInterceptor("-x")
        engine = FeatureFlagEngine(interceptors=[interceptor])
        assert asyncio.run(engine.fetch(MutableFlagSpec("mode", "safe"))) == "safe-x"
        assert interceptor.calls == [("mode", DEFAULT_SOURCE.id, "safe")]

    def test_priority_and_fall_through(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        s1 = ScriptedFeatureFlagSource("s1", values={"variant": "a"})
        s2 = ScriptedFeatureFlagSource("s2", values={"variant": "b"})
        engine = FeatureFlagEngine([s1, s2])

        assert asyncio.run(engine.fetch(spec)) == "a"
        s1.set_value(spec, ABSENT)
        assert asyncio.run(engine.fetch(spec)) == "b"
        s2.set_value(spec, ABSENT)
        assert asyncio.run(engine.fetch(spec)) == "default"

    def test_short_circuits_lower_priority_sources(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        s1 = ScriptedFeatureFlagSource("s1", values={"variant": "a"})
        s2 = ScriptedFeatureFlagSource("s2", values={"variant": "b"})
        engine = FeatureFlagEngine([s1, s2])

        asyncio.run(engine.fetch(spec))
        assert s1.fetch_calls == ["variant"]
        assert s2.fetch_calls == []

    def test_slow_higher_priority_source_still_wins(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        slow = ScriptedFeatureFlagSource("slow", values={"variant": "slow"}, fetch_delay=0.05)
        fast = ScriptedFeatureFlagSource("fast", values={"variant": "fast"})
        engine = FeatureFlagEngine([slow, fast])

        assert asyncio.run(engine.fetch(spec)) == "slow"
        assert fast.fetch_calls == []

    def test_none_is_a_value(self) -> None:
        spec = MutableFlagSpec("owner", "nobody", value_type=object)
        source = ScriptedFeatureFlagSource(values={"owner": None})
        engine = FeatureFlagEngine([source])
        assert asyncio.run(engine.fetch(spec)) is None

    def test_failing_source_treated_as_absent(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        broken = ScriptedFeatureFlagSource("broken")
        broken.fetch_error = ConnectionError("unreachable")
        backup = ScriptedFeatureFlagSource("backup", values={"variant": "b"})
        logger = RecordingFlagLogger()
        engine = FeatureFlagEngine([broken, backup], logger=logger)

        assert asyncio.run(engine.fetch(spec)) == "b"
        assert any("Source 'broken' failed to fetch spec 'variant'" in m for m in logger.messages)

    def test_failing_source_reported_to_structlog(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        broken = ScriptedFeatureFlagSource("broken")
        broken.fetch_error = ConnectionError("unreachable")
        engine = FeatureFlagEngine([broken])

        with structlog.testing.capture_logs() as logs:
            assert asyncio.run(engine.fetch(spec)) == "default"

        failures = [e for e in logs if e["event"] == "feature_flags.source_failed"]
        assert len(failures) == 1
        assert failures[0]["log_level"] == "warning"
        assert failures[0]["detail"] == {"source_id": "broken", "spec_id": "variant", "operation": "fetch"}

    def test_interceptor_receives_winning_source(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        source = ScriptedFeatureFlagSource("remote", values={"variant": "a"})
        interceptor = SuffixInterceptor("-1")
        engine = FeatureFlagEngine([source], [interceptor])

        assert asyncio.run(engine.fetch(spec)) == "a-1"
        assert interceptor.calls == [("variant", "remote", "a")]

    def test_interceptor_fold_order(self) -> None:
        spec = MutableFlagSpec("name", "x")
        engine = FeatureFlagEngine(interceptors=[SuffixInterceptor("-1"), SuffixInterceptor("-2")])
        assert asyncio.run(engine.fetch(spec)) == "x-1-2"

    def test_interceptor_failure_propagates(self) -> None:
        engine = FeatureFlagEngine(interceptors=[_ExplodingInterceptor()])
        with pytest.raises(ValueError, match="broken transform"):
            asyncio.run(engine.fetch(MutableFlagSpec("name", "x")))

    def test_interceptor_can_read_other_flags(self) -> None:
        kill_switch = ImmutableFlagSpec("kill_switch", True)
        engine = FeatureFlagEngine()
        engine.add_interceptor(
            FunctionInterceptor(
                "kill",
                lambda spec, source, value: False if spec.id != "kill_switch" and engine.value(kill_switch) else value,
            )
        )
        assert asyncio.run(engine.fetch(MutableFlagSpec("new_ui", True))) is False

    def test_concurrent_calls_resolve_independently(self) -> None:
        a = MutableFlagSpec("a", 0)
        b = MutableFlagSpec("b", 0)
        source = ScriptedFeatureFlagSource(values={"a": 1, "b": 2}, fetch_delay=0.01)
        engine = FeatureFlagEngine([source])

        async def run() -> list[int]:
            return list(await asyncio.gather(engine.fetch(a), engine.fetch(b), engine.fetch(a)))

        assert asyncio.run(run()) == [1, 2, 1]

    def test_snapshot_ignores_source_added_mid_resolution(self) -> None:
        spec = MutableFlagSpec("variant", "default")
        slow = ScriptedFeatureFlagSource("slow", fetch_delay=0.02)
        late = ScriptedFeatureFlagSource("late", values={"variant": "late"})
        engine = FeatureFlagEngine([slow])

        async def run() -> str:
            pending = asyncio.ensure_future(engine.fetch(spec))
            await asyncio.sleep(0)
            engine.add_source(late)
            return await pending

        assert asyncio.run(run()) == "default"
        assert late.fetch_calls == []

    def test_get_dispatches_to_fetch(self) -> None:
        source = ScriptedFeatureFlagSource(values={"n": 9})
        engine = FeatureFlagEngine([source])
        assert asyncio.run(engine.get(MutableFlagSpec("n", 0))) == 9

    def test_get_dispatches_to_stream(self) -> None:
        engine = FeatureFlagEngine()
        assert isinstance(engine.get(StreamingFlagSpec("s", 0)), FlagStream)


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


class TestRegistries:
    def test_add_source_idempotent(self) -> None:
        engine = FeatureFlagEngine()
        source = ScriptedFeatureFlagSource()
        assert engine.add_source(source) is True
        assert engine.add_source(source) is False
        assert engine.all_sources() == (source,)

    def test_remove_source(self) -> None:
        s1, s2 = ScriptedFeatureFlagSource("s1"), ScriptedFeatureFlagSource("s2")
        engine = FeatureFlagEngine([s1, s2])
        assert engine.remove_source(s1) is True
        assert engine.all_sources() == (s2,)
        assert engine.remove_source(s1) is False

    def test_sources_keep_registration_order(self) -> None:
        sources = [ScriptedFeatureFlagSource(f"s{i}") for i in range(4)]
        engine = FeatureFlagEngine()
        for source in sources:
            engine.add_source(source)
        assert engine.all_sources() == tuple(sources)

    def test_constructor_deduplicates(self) -> None:
        source = ScriptedFeatureFlagSource()
        engine = FeatureFlagEngine([source, source])
        assert len(engine.all_sources()) == 1

    def test_add_interceptor_idempotent(self) -> None:
        engine = FeatureFlagEngine()
        interceptor = SuffixInterceptor("-1")
        assert engine.add_interceptor(interceptor) is True
        assert engine.add_interceptor(interceptor) is False
        assert engine.all_interceptors() == (interceptor,)

    def test_remove_interceptor(self) -> None:
        i1, i2 = SuffixInterceptor("-1"), SuffixInterceptor("-2")
        engine = FeatureFlagEngine(interceptors=[i1, i2])
        assert engine.remove_interceptor(i1) is True
        assert engine.remove_interceptor(i1) is False
        assert engine.all_interceptors() == (i2,)

    def test_snapshots_are_copies(self) -> None:
        engine = FeatureFlagEngine()
        sources = engine.all_sources()
        engine.add_source(ScriptedFeatureFlagSource())
        assert sources == ()


# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------


class TestLogger:
    def test_immutable_message(self) -> None:
        logger = RecordingFlagLogger()
        engine = FeatureFlagEngine(logger=logger)
        engine.value(ImmutableFlagSpec("banner", "hi"))
        assert logger.messages == ["Get value 'hi' by immutable spec 'banner'"]

    def test_mutable_message_names_source(self) -> None:
        logger = RecordingFlagLogger()
        source = ScriptedFeatureFlagSource("remote", values={"limit": 10})
        engine = FeatureFlagEngine([source], logger=logger)
        asyncio.run(engine.fetch(MutableFlagSpec("limit", 1)))
        assert logger.messages == ["Get value '10' by mutable spec 'limit' from source 'remote'"]

    def test_default_message_names_default_source(self) -> None:
        logger = RecordingFlagLogger()
        engine = FeatureFlagEngine(logger=logger)
        asyncio.run(engine.fetch(MutableFlagSpec("limit", 1)))
        assert logger.messages == ["Get value '1' by mutable spec 'limit' from source 'default_value'"]

    def test_set_logger_swaps_and_disables(self) -> None:
        first, second = RecordingFlagLogger(), RecordingFlagLogger()
        engine = FeatureFlagEngine(logger=first)
        spec = ImmutableFlagSpec("n", 1)
        engine.value(spec)
        engine.set_logger(second)
        engine.value(spec)
        engine.set_logger(None)
        engine.value(spec)
        assert len(first.messages) == 1
        assert len(second.messages) == 1
        assert engine.logger is None

    def test_broken_logger_does_not_break_resolution(self) -> None:
        engine = FeatureFlagEngine(logger=_BrokenLogger())
        assert engine.value(ImmutableFlagSpec("n", 1)) == 1
        assert asyncio.run(engine.fetch(MutableFlagSpec("m", 2))) == 2


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_closed_engine_rejects_reads(self) -> None:
        engine = FeatureFlagEngine()
        asyncio.run(engine.aclose())
        assert engine.closed is True
        with pytest.raises(EngineClosedError):
            engine.value(ImmutableFlagSpec("n", 1))
        with pytest.raises(EngineClosedError):
            asyncio.run(engine.fetch(MutableFlagSpec("m", 1)))
        with pytest.raises(EngineClosedError):
            engine.stream(StreamingFlagSpec("s", 1))

    def test_aclose_is_idempotent(self) -> None:
        engine = FeatureFlagEngine()

        async def run() -> None:
            await engine.aclose()
            await engine.aclose()

        asyncio.run(run())

    def test_async_context_manager_closes(self) -> None:
        async def run() -> FeatureFlagEngine:
            async with FeatureFlagEngine() as engine:
                assert engine.closed is False
            return engine

        assert asyncio.run(run()).closed is True

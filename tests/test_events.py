import asyncio

from transcribe_helper.lib.events import EventChannel


def test_on_and_emit():
    events = EventChannel()
    seen = []
    events.on("statusUpdate", lambda *args: seen.append(args))
    assert events.emit("statusUpdate", 1, 2) == 1
    assert events.emit("statusUpdate", 3) == 1
    assert seen == [(1, 2), (3,)]


def test_once_runs_exactly_once_even_when_reentrant():
    events = EventChannel()
    calls = []

    def handler():
        calls.append("once")
        events.emit("disconnected")

    events.once("disconnected", handler)
    events.emit("disconnected")
    events.emit("disconnected")
    assert calls == ["once"]
    assert events.listener_count("disconnected") == 0


def test_off_single_handler_and_all():
    events = EventChannel()
    first, second = [], []
    h1 = events.on("connected", lambda: first.append(1))
    events.on("connected", lambda: second.append(1))
    events.off("connected", h1)
    events.emit("connected")
    assert (first, second) == ([], [1])

    events.off("connected")
    assert events.emit("connected") == 0


def test_failing_handler_does_not_stop_others(caplog):
    events = EventChannel()
    seen = []

    def boom():
        raise RuntimeError("listener broke")

    events.on("connected", boom)
    events.on("connected", lambda: seen.append("ok"))
    events.emit("connected")
    assert seen == ["ok"]
    assert "listener broke" in caplog.text


async def test_coroutine_handlers_are_scheduled():
    events = EventChannel()
    done = asyncio.Event()

    async def handler(value):
        assert value == "x"
        done.set()

    events.on("statusUpdate", handler)
    events.emit("statusUpdate", "x")
    await asyncio.wait_for(done.wait(), timeout=1)

"""Tests for the subordinate server monitor."""
import asyncio

import pytest

from begin.supervisor.monitor import ServerMonitor


async def settle(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def monitor(process_manager, fake_scheduler):
    events = []
    mon = ServerMonitor(
        ["node", "index.js"],
        process_manager,
        fake_scheduler,
        watch=["src/server/**/*.js"],
    )
    for name in ("start", "restart", "crash", "exit"):
        mon.on(name, lambda code, name=name: events.append((name, code)))
    mon.events = events
    return mon


class TestServerMonitor:
    @pytest.mark.asyncio
    async def test_retired_processes_report_nothing(self, monitor, process_manager):
        await monitor.start()
        for _ in range(60):
            await monitor.restart()
        await settle()
        assert all(handle.terminated for handle in process_manager.handles[:-1])
        assert [name for name, _ in monitor.events].count("restart") == 60
        assert not any(name in ("crash", "exit") for name, _ in monitor.events)

    @pytest.mark.asyncio
    async def test_live_process_crash_after_many_restarts(self, monitor, process_manager):
        await monitor.start()
        for _ in range(60):
            await monitor.restart()
        await settle()
        process_manager.handles[-1].finish(3)
        await settle()
        assert monitor.events[-1] == ("crash", 3)

    @pytest.mark.asyncio
    async def test_clean_exit_of_the_live_process(self, monitor, process_manager):
        await monitor.start()
        await monitor.restart()
        process_manager.handles[-1].finish(0)
        await settle()
        assert monitor.events[-1] == ("exit", 0)
        assert await monitor.stop() is None

    @pytest.mark.asyncio
    async def test_source_change_restarts(self, monitor, process_manager, fake_scheduler):
        await monitor.start()
        await fake_scheduler.trigger("src/server/index.js")
        assert len(process_manager.handles) == 2
        assert process_manager.handles[0].terminated
        assert monitor.events == [("start", None), ("restart", None)]

    @pytest.mark.asyncio
    async def test_stop_terminates_and_exits(self, monitor, process_manager):
        await monitor.start()
        assert await monitor.stop() == -15
        await settle()
        assert monitor.events == [("start", None), ("exit", -15)]

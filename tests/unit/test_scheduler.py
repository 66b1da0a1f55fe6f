"""Tests for the in-process scheduler, executor and execution pipeline."""
import asyncio

import pytest
from conftest import QuietWatcher
from structlog.testing import capture_logs

from begin.core.task.models import TaskStatus, WatchEvent
from begin.core.task.scheduler import Scheduler, TaskScheduler
from begin.utils.exceptions import CyclicDependencyError, StageError, TaskNotFoundError


def recorder(calls, name, result=None):
    def body():
        calls.append(name)
        return result

    return body


class TestPlanning:
    def test_implements_the_capability(self):
        assert isinstance(TaskScheduler(), Scheduler)

    def test_waves_follow_dependencies(self):
        scheduler = TaskScheduler()
        scheduler.define_task("lint")
        scheduler.define_task("html")
        scheduler.define_task("scripts", ["lint"])
        scheduler.define_task("build", ["html", "scripts"])
        plan = scheduler.plan("build")
        waves = [sorted(wave) for wave in plan.execution_order]
        assert waves == [["html", "lint"], ["scripts"], ["build"]]

    def test_plan_covers_only_the_closure(self):
        scheduler = TaskScheduler()
        scheduler.define_task("lint")
        scheduler.define_task("images")
        scheduler.define_task("scripts", ["lint"])
        assert sorted(scheduler.plan("scripts").task_names()) == ["lint", "scripts"]

    def test_dependencies_given_as_a_generator(self):
        scheduler = TaskScheduler()
        scheduler.define_task("lint")
        with capture_logs() as logs:
            scheduler.define_task("scripts", (name for name in ["lint"]))
        assert scheduler.get("scripts").depends_on == ("lint",)
        [defined] = [entry for entry in logs if entry["event"] == "task_defined"]
        assert defined["depends_on"] == ["lint"]

    def test_unknown_task(self):
        with pytest.raises(TaskNotFoundError):
            TaskScheduler().plan("nope")

    def test_cycle_is_detected_at_run_time(self):
        scheduler = TaskScheduler()
        scheduler.define_task("a", ["b"])
        scheduler.define_task("b", ["a"])
        with pytest.raises(CyclicDependencyError):
            scheduler.plan("a")


class TestRunning:
    @pytest.mark.asyncio
    async def test_runs_dependencies_first(self):
        calls = []
        scheduler = TaskScheduler()
        scheduler.define_task("lint", [], recorder(calls, "lint"))
        scheduler.define_task("scripts", ["lint"], recorder(calls, "scripts", "bundle"))
        result = await scheduler.run_task("scripts")
        assert calls == ["lint", "scripts"]
        assert result.success
        assert result.output == "bundle"

    @pytest.mark.asyncio
    async def test_pipeline_start_lists_the_planned_tasks(self):
        scheduler = TaskScheduler()
        scheduler.define_task("lint")
        scheduler.define_task("scripts", ["lint"])
        with capture_logs() as logs:
            await scheduler.run_task("scripts")
        [started] = [entry for entry in logs if entry["event"] == "pipeline_start"]
        assert started["tasks"] == ["lint", "scripts"]

    @pytest.mark.asyncio
    async def test_async_bodies_are_awaited(self):
        async def body():
            await asyncio.sleep(0)
            return 7

        scheduler = TaskScheduler()
        scheduler.define_task("x", [], body)
        assert (await scheduler.run_task("x")).output == 7

    @pytest.mark.asyncio
    async def test_failure_skips_dependents_not_siblings(self):
        calls = []

        def broken():
            raise StageError("styles", "boom")

        scheduler = TaskScheduler()
        scheduler.define_task("styles", [], broken)
        scheduler.define_task("html", [], recorder(calls, "html"))
        scheduler.define_task("build", ["styles", "html"])
        scheduler.define_task("deploy", ["build"], recorder(calls, "deploy"))
        result = await scheduler.run_task("deploy")
        assert not result.success
        assert calls == ["html"]
        assert result.task_results["styles"].status == TaskStatus.FAILED
        assert "boom" in result.task_results["styles"].error
        assert result.task_results["build"].status == TaskStatus.SKIPPED
        assert result.task_results["deploy"].status == TaskStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_reported(self):
        scheduler = TaskScheduler()
        scheduler.define_task("x", [], lambda: 1 / 0)
        result = await scheduler.run_task("x")
        assert not result.success
        assert "division by zero" in result.task_results["x"].error

    @pytest.mark.asyncio
    async def test_same_name_invocations_are_serialised(self):
        active = []
        overlaps = []

        async def body():
            active.append(1)
            overlaps.append(len(active))
            await asyncio.sleep(0.01)
            active.pop()

        scheduler = TaskScheduler()
        scheduler.define_task("styles", [], body)
        await asyncio.gather(scheduler.run_task("styles"), scheduler.run_task("styles"))
        assert overlaps == [1, 1]

    def test_start_runs_on_a_fresh_loop(self):
        calls = []
        scheduler = TaskScheduler()
        scheduler.define_task("a", [], recorder(calls, "a"))
        scheduler.define_task("b", [], recorder(calls, "b"))
        results = scheduler.start("a", "b")
        assert calls == ["a", "b"]
        assert all(result.success for result in results)


class TestWatching:
    @pytest.mark.asyncio
    async def test_task_binding_runs_the_task(self, tmp_path):
        calls = []
        watcher = QuietWatcher(tmp_path)
        scheduler = TaskScheduler(watcher=watcher)
        scheduler.define_task("styles", [], recorder(calls, "styles"))
        scheduler.watch(["src/**/*.scss"], ("styles",))

        assert watcher.emit(WatchEvent(type="modified", path="src/a.scss")) == 1
        assert watcher.emit(WatchEvent(type="modified", path="src/a.js")) == 0
        for _ in range(5):
            await asyncio.sleep(0)
        assert calls == ["styles"]
        scheduler.close()

    @pytest.mark.asyncio
    async def test_callback_binding_receives_the_event(self, tmp_path):
        seen = []
        watcher = QuietWatcher(tmp_path)
        scheduler = TaskScheduler(watcher=watcher)
        scheduler.watch(["package.json"], seen.append)
        watcher.emit(WatchEvent(type="modified", path="package.json"))
        await asyncio.sleep(0)
        assert [event.path for event in seen] == ["package.json"]
        scheduler.close()

    @pytest.mark.asyncio
    async def test_negated_patterns(self, tmp_path):
        seen = []
        watcher = QuietWatcher(tmp_path)
        scheduler = TaskScheduler(watcher=watcher)
        scheduler.watch(["**/*.js", "!vendor/**"], seen.append)
        watcher.emit(WatchEvent(type="modified", path="vendor/x.js"))
        watcher.emit(WatchEvent(type="modified", path="app/x.js"))
        await asyncio.sleep(0)
        assert [event.path for event in seen] == ["app/x.js"]
        scheduler.close()

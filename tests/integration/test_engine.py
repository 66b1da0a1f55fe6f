"""Integration tests: the engine on a real scheduler, and the CLI host."""
import pytest
from conftest import QuietWatcher
from structlog.testing import capture_logs
from typer.testing import CliRunner

from begin import cli
from begin.cli import app
from begin.core.task.models import TaskDescriptor
from begin.core.task.scheduler import TaskScheduler
from begin.main import Engine, begin
from begin.pipelines.graph import TASK_NAMES
from begin.utils.exceptions import ConfigurationError


@pytest.fixture
def make_engine(project, process_manager, livereload, settings):
    def factory(options=None):
        return begin(
            TaskScheduler(watcher=QuietWatcher(project)),
            {"root": str(project), **(options or {})},
            process_manager=process_manager,
            livereload=livereload,
            settings=settings,
        )

    return factory


class TestRegistration:
    def test_every_task_is_registered(self, make_engine):
        engine = make_engine()
        assert engine.registry.names() == list(TASK_NAMES)
        assert engine.scheduler.names() == list(TASK_NAMES)

    def test_prefixed_names(self, make_engine):
        engine = make_engine({"prefix": "web"})
        assert "web_build" in engine.registry
        assert engine.registry.get("web_scripts").depends_on == ("web_lint",)

    def test_only_stubs_everything_else(self, make_engine):
        engine = make_engine({"only": ["html"]})
        assert not engine.registry.is_excluded("html")
        assert engine.registry.is_excluded("lint")
        assert engine.registry.is_excluded("server")

    def test_dangling_dependency(self, make_engine):
        engine = make_engine()
        with pytest.raises(ConfigurationError):
            engine.registry.register([TaskDescriptor(name="deploy", depends_on=("missing",))])
        assert "deploy" not in engine.registry

    def test_default_scheduler(self, project):
        engine = Engine({"root": str(project)})
        assert isinstance(engine.scheduler, TaskScheduler)
        assert engine.scheduler.watcher.root == project.resolve()


class TestRunning:
    def test_excluded_server_only_warns(self, make_engine, project):
        engine = make_engine({"exclude": ["server"], "warnExclusions": True})
        with capture_logs() as logs:
            [result] = engine.start("server")
        assert result.success
        warnings = [entry for entry in logs if "explicitly excluded" in entry["event"]]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"
        assert not (project / "public").exists()

    def test_lint_findings_do_not_fail_scripts(self, make_engine, process_manager, project):
        process_manager.run_codes["jshint"] = 1
        [result] = make_engine().start("scripts")
        assert result.success
        assert result.task_results["lint"].output == 1
        assert (project / "public" / "scripts" / "app.min.js").exists()

    def test_build(self, make_engine, project):
        [result] = make_engine().start("build")
        assert result.success
        public = project / "public"
        assert (public / "index.html").exists()
        assert (public / "styles" / "app.min.css").exists()
        assert (public / "images" / "logo.png").exists()

    def test_failed_tests(self, make_engine, process_manager):
        process_manager.run_codes["nyc"] = 2
        [result] = make_engine().start("test")
        assert not result.success


class TestCli:
    @pytest.fixture(autouse=True)
    def quiet(self, monkeypatch):
        monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
        monkeypatch.delenv("CONFIG_FILE", raising=False)

    def test_list(self, project):
        result = CliRunner().invoke(app, ["--config", str(project / "begin.yaml"), "--list"])
        assert result.exit_code == 0
        for name in TASK_NAMES:
            assert name in result.output

    def test_unknown_task(self, project):
        result = CliRunner().invoke(app, ["--config", str(project / "begin.yaml"), "deploy"])
        assert result.exit_code == 2

    def test_runs_a_task(self, project):
        result = CliRunner().invoke(app, ["--config", str(project / "begin.yaml"), "html"])
        assert result.exit_code == 0
        assert (project / "public" / "index.html").exists()

"""Tests for the pipeline stages run against a sample project."""
import asyncio
import datetime as dt
import json

import pytest
from structlog.testing import capture_logs

from begin.pipelines.dev import run_dev
from begin.pipelines.documents import generate_changelog, generate_docs
from begin.pipelines.images import build_images
from begin.pipelines.markup import build_html
from begin.pipelines.quality import coverage_command, lint_targets, run_lint, run_tests, watch_tests
from begin.pipelines.scripts import build_scripts
from begin.pipelines.styles import build_styles, include_paths
from begin.supervisor.devloop import RestartRequest
from begin.tools.changelog import parse_commit
from begin.utils.exceptions import StageError


class TestScripts:
    @pytest.mark.asyncio
    async def test_single_source_bundle(self, make_context, project):
        ctx = make_context({"client": {"scripts": {"src": ["a.js"]}, "templates": {"src": []}}})
        await build_scripts(ctx)

        bundle = project / "public" / "scripts" / "app.min.js"
        text = bundle.read_text(encoding="utf-8")
        assert text == "var answer=42;\n//# sourceMappingURL=app.min.js.map\n"
        assert "angular" not in text

        source_map = json.loads((project / "public" / "scripts" / "app.min.js.map").read_text())
        assert source_map["sources"] == ["src/client/scripts/a.js"]

    @pytest.mark.asyncio
    async def test_templates_are_keyed_by_path(self, make_context, project):
        await build_scripts(make_context())
        text = (project / "public" / "scripts" / "app.min.js").read_text(encoding="utf-8")
        assert '"home.html"' in text

    @pytest.mark.asyncio
    async def test_library_scripts_come_first(self, make_context, project):
        lib = project / "bower_components" / "tiny" / "tiny.js"
        lib.parent.mkdir(parents=True)
        lib.write_text("var tiny = true;\n", encoding="utf-8")
        ctx = make_context({"client": {"scripts": {"lib": ["tiny/tiny.js"]}}})
        await build_scripts(ctx)
        text = (project / "public" / "scripts" / "app.min.js").read_text(encoding="utf-8")
        assert text.index("var tiny=true;") < text.index("$templateCache") < text.index("var answer=42;")

    @pytest.mark.asyncio
    async def test_rebuild_is_byte_identical(self, make_context, project):
        ctx = make_context()
        out = project / "public" / "scripts"
        await build_scripts(ctx)
        first = {p.name: p.read_bytes() for p in out.iterdir()}
        await build_scripts(ctx)
        second = {p.name: p.read_bytes() for p in out.iterdir()}
        assert first == second
        assert set(first) == {"app.min.js", "app.min.js.map"}

    @pytest.mark.asyncio
    async def test_optional_tools_are_applied_when_set(self, make_context, project):
        def transpile(records):
            return [r.with_contents(r.text.replace("var", "let")) for r in records]

        from begin.tools.base import ToolSet

        ctx = make_context(tools=ToolSet().override(transpile=transpile))
        await build_scripts(ctx)
        text = (project / "public" / "scripts" / "app.min.js").read_text(encoding="utf-8")
        assert "let answer=42;" in text

    @pytest.mark.asyncio
    async def test_unset_optional_steps_are_logged(self, make_context, project):
        with capture_logs() as logs:
            await build_scripts(make_context())
            await build_styles(make_context())
        skipped = [entry["step"] for entry in logs if entry["event"] == "step_skipped"]
        assert skipped == ["transpile", "annotate", "autoprefix"]

    @pytest.mark.asyncio
    async def test_set_optional_steps_are_not_logged(self, make_context, project):
        from begin.tools.base import ToolSet

        def same(records, **options):
            return records

        tools = ToolSet().override(transpile=same, annotate=same)
        with capture_logs() as logs:
            await build_scripts(make_context(tools=tools))
        assert not [entry for entry in logs if entry["event"] == "step_skipped"]


class TestOtherStages:
    @pytest.mark.asyncio
    async def test_html_replaces_stale_output(self, make_context, project):
        stale = project / "public" / "index.html"
        stale.parent.mkdir(parents=True)
        stale.write_text("old", encoding="utf-8")
        await build_html(make_context())
        assert stale.read_text(encoding="utf-8") == "<html><body><h1>Hello</h1></body></html>"

    @pytest.mark.asyncio
    async def test_styles(self, make_context, project):
        await build_styles(make_context())
        css = (project / "public" / "styles" / "app.min.css").read_text(encoding="utf-8")
        assert "body{color:" in css
        assert "sourceMappingURL=app.min.css.map" in css
        assert (project / "public" / "styles" / "app.min.css.map").exists()

    def test_style_include_order(self, make_context):
        ctx = make_context({"client": {"styles": {"include": {"lib": ["bootstrap"], "src": ["shared"]}}}})
        assert include_paths(ctx) == ["bower_components/bootstrap", "src/client/shared"]

    @pytest.mark.asyncio
    async def test_styles_compile_error_fails_the_stage(self, make_context, project):
        (project / "src" / "client" / "styles" / "styles.scss").write_text("a { color: $nope; }")
        with pytest.raises(StageError, match="styles"):
            await build_styles(make_context())
        assert not (project / "public" / "styles").exists()

    @pytest.mark.asyncio
    async def test_images(self, make_context, project):
        rendered = await build_images(make_context())
        assert [r.relative_path for r in rendered] == ["logo.png"]
        assert (project / "public" / "images" / "logo.png").exists()


class TestQuality:
    def test_lint_findings_never_fail(self, make_context, process_manager):
        process_manager.run_codes["jshint"] = 2
        ctx = make_context()
        assert run_lint(ctx) == 2
        [command] = process_manager.commands("run")
        assert command[:2] == ["jshint", "--reporter=unix"]
        assert command[2:] == lint_targets(ctx)
        assert lint_targets(ctx) == ["src/client/scripts/a.js", "src/server/index.js", "test/spec.js"]

    def test_lint_without_files(self, make_context, process_manager):
        ctx = make_context({"client": {"scripts": {"src": []}}, "server": {"watch": []}, "test": {"watch": []}})
        assert run_lint(ctx) == 0
        assert process_manager.calls == []

    def test_coverage_command(self, make_context):
        assert coverage_command(make_context()) == [
            "nyc",
            "--reporter=text",
            "--reporter=lcov",
            "--include=src/server/**/*.js",
            "--include=*.js",
            "mocha",
            "spec.js",
        ]

    def test_failing_tests_fail_the_stage(self, make_context, process_manager):
        process_manager.run_codes["nyc"] = 1
        with pytest.raises(StageError, match="status 1"):
            run_tests(make_context())

    def test_passing_tests(self, make_context):
        assert run_tests(make_context()) == 0

    @pytest.mark.asyncio
    async def test_autotest_watches_and_never_returns(self, make_context, fake_scheduler):
        task = asyncio.ensure_future(watch_tests(make_context({"prefix": "web"})))
        await asyncio.sleep(0)
        [binding] = fake_scheduler.bindings
        assert binding.task_names == ("web_test",)
        assert binding.patterns == ("src/server/**/*.js", "*.js", "test/**/*.js")
        assert not task.done()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


class TestDocuments:
    @pytest.mark.asyncio
    async def test_docs(self, make_context, project):
        await generate_docs(make_context())
        readme = (project / "README.md").read_text(encoding="utf-8")
        assert readme == "Server entry.\n\nSpecs.\n\n"

    @pytest.mark.asyncio
    async def test_docs_sources_come_first(self, make_context, project):
        (project / "build.js").write_text("/** Build file. */\n", encoding="utf-8")
        await generate_docs(make_context({"docs": {"src": ["build.js"]}}))
        readme = (project / "README.md").read_text(encoding="utf-8")
        assert readme == "Build file.\n\nServer entry.\n\nSpecs.\n\n"

    def test_changelog_prepends_a_section(self, make_context, project, monkeypatch):
        (project / "CHANGELOG.md").write_text("## 1.1.0\n", encoding="utf-8")
        commits = [parse_commit("abcdef0123", "feat: dev loop")]
        monkeypatch.setattr("begin.tools.changelog.read_commits", lambda root: commits)

        path = generate_changelog(make_context())
        text = path.read_text(encoding="utf-8")
        assert text.startswith(f"## 1.2.0 ({dt.date.today().isoformat()})")
        assert "* dev loop (abcdef0)" in text
        assert text.rstrip().endswith("## 1.1.0")


class TestDev:
    @pytest.mark.asyncio
    async def test_respawns_while_children_exit_cleanly(self, make_context, process_manager):
        process_manager.spawn_codes["demon"] = [0, 0, 3]
        request = await run_dev(make_context())
        assert request == RestartRequest(exit_code=3, reason="child_exited")
        assert process_manager.commands("run") == [["npm", "install"]]
        spawned = process_manager.commands("spawn")
        assert len(spawned) == 3
        assert spawned[0][-1] == "demon"

    @pytest.mark.asyncio
    async def test_failed_install_stops_the_chain(self, make_context, process_manager):
        process_manager.run_codes["npm"] = 1
        request = await run_dev(make_context())
        assert request.exit_code == 1
        assert process_manager.commands("spawn") == []

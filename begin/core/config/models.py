"""Immutable configuration tree consumed by every engine component.

Every field carries a default so that a partial (or empty) caller value
always resolves to a complete :class:`Configuration`.  Arrays are stored as
tuples so the resolved tree cannot be mutated after creation.
"""

from __future__ import annotations

import os
import sys

from pydantic import BaseModel, ConfigDict, Field

from begin.config import settings


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ServerOptions(FrozenModel):
    cwd: str = "src/server"
    main: str = "index.js"
    command: tuple[str, ...] = ("node",)
    watch: tuple[str, ...] = ("src/server/**/*.js", "*.js")


class HtmlOptions(FrozenModel):
    src: tuple[str, ...] = ("*.html",)


class ScriptsOptions(FrozenModel):
    cwd: str = "scripts"
    dest: str = "app.min.js"
    lib: tuple[str, ...] = ()
    src: tuple[str, ...] = ("*.js", "*/**/*.js")


class StylesInclude(FrozenModel):
    lib: tuple[str, ...] = ()
    src: tuple[str, ...] = ("styles",)


class StylesOptions(FrozenModel):
    cwd: str = "styles"
    dest: str = "app.min.css"
    include: StylesInclude = StylesInclude()
    src: tuple[str, ...] = ("styles.scss",)


class TemplatesOptions(FrozenModel):
    cwd: str = "views"
    src: tuple[str, ...] = ("**/*.html",)
    module: str = "templates"


class ImagesOptions(FrozenModel):
    cwd: str = "images"
    src: tuple[str, ...] = ("**/*.png",)


class ClientOptions(FrozenModel):
    lib: str = "bower_components"
    cwd: str = "src/client"
    dest: str = "public"
    html: HtmlOptions = HtmlOptions()
    scripts: ScriptsOptions = ScriptsOptions()
    styles: StylesOptions = StylesOptions()
    templates: TemplatesOptions = TemplatesOptions()
    images: ImagesOptions = ImagesOptions()


class TestOptions(FrozenModel):
    __test__ = False  # not a pytest class

    main: str = "spec.js"
    watch: tuple[str, ...] = ("test/**/*.js",)
    command: tuple[str, ...] = ("mocha",)
    coverage: tuple[str, ...] = ("nyc", "--reporter=text", "--reporter=lcov")


class LintOptions(FrozenModel):
    command: tuple[str, ...] = ("jshint", "--reporter=unix")


class DocsOptions(FrozenModel):
    src: tuple[str, ...] = ()
    dest: str = "README.md"
    template: str = "docs.md.j2"


class ChangelogOptions(FrozenModel):
    dest: str = "CHANGELOG.md"
    preset: str = "angular"


class DevOptions(FrozenModel):
    """Files and commands that drive the self-restart paths of the dev loop."""

    entry: str = "begin.yaml"
    manifest: str = "package.json"
    install: tuple[str, ...] = ("npm", "install")
    prune: tuple[str, ...] = ("npm", "prune")
    lib_manifest: str = "bower.json"
    lib_install: tuple[str, ...] = ("bower", "install")
    engine: tuple[str, ...] = Field(
        default_factory=lambda: (sys.executable, "-m", "begin")
    )


class Configuration(FrozenModel):
    root: str = Field(default_factory=os.getcwd)
    port: int | None = Field(default_factory=lambda: settings.port)
    server: ServerOptions = ServerOptions()
    client: ClientOptions = ClientOptions()
    test: TestOptions = TestOptions()
    lint: LintOptions = LintOptions()
    docs: DocsOptions = DocsOptions()
    changelog: ChangelogOptions = ChangelogOptions()
    dev: DevOptions = DevOptions()
    prefix: str | None = None
    exclude: tuple[str, ...] | None = None
    only: tuple[str, ...] | None = None
    warn_exclusions: bool = False

"""Command line host: ``begin <task>...``.

Options are read from a YAML/JSON file (``begin.yaml`` by default, or the
``CONFIG_FILE`` setting).  Tasks run in the order given; the process exits
with the status a task requested through a :class:`RestartRequest`, with 1
when a task failed, and with 0 otherwise.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer

from begin.config import settings
from begin.core.config import load_options
from begin.engine.pipeline import PipelineResult
from begin.main import Engine, begin
from begin.supervisor.devloop import RestartRequest
from begin.utils.exceptions import BeginError
from begin.utils.logging import get_logger, setup_logging

app = typer.Typer(
    help="Build, serve and watch a web client/server project.",
    add_completion=False,
)


def exit_code_of(result: PipelineResult) -> int:
    if not result.success:
        return 1
    output = result.output
    if isinstance(output, RestartRequest):
        return output.exit_code
    return 0


def print_tasks(engine: Engine) -> None:
    for row in engine.registry.describe():
        depends = f" <- {', '.join(row['depends_on'])}" if row["depends_on"] else ""
        typer.echo(f"{row['name']:<20} {row['doc']}{depends}")


@app.command()
def main(
    tasks: Annotated[list[str] | None, typer.Argument(help="Tasks to run, in order")] = None,
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Options file (YAML or JSON)")
    ] = None,
    list_tasks: Annotated[bool, typer.Option("--list", "-l", help="List the tasks")] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Verbose logging")] = False,
) -> None:
    """Run the named tasks of the project in the current directory."""
    setup_logging(debug=debug or settings.debug, json_logs=settings.log_json)
    logger = get_logger("cli")

    config_path = Path(config or settings.config_file)
    if config:
        # Engines spawned by ``dev`` and the dev loop read the same file.
        os.environ["CONFIG_FILE"] = str(config_path.resolve())
    options = load_options(config_path)
    if config_path.exists():
        options.setdefault("root", str(config_path.resolve().parent))

    try:
        engine = begin(options=options)
    except BeginError as exc:
        logger.error("engine_setup_failed", error=str(exc))
        raise typer.Exit(2) from exc

    if list_tasks or not tasks:
        print_tasks(engine)
        return

    unknown = [name for name in tasks if name not in engine.registry]
    if unknown:
        logger.error("unknown_tasks", tasks=unknown)
        raise typer.Exit(2)

    code = 0
    for result in engine.start(*tasks):
        code = exit_code_of(result)
        if code != 0:
            break
    raise typer.Exit(code)

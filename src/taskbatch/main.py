"""CLI entrypoint for taskbatch."""

from pathlib import Path

import rich_click as click

from taskbatch import __version__
from taskbatch.logging_setup import setup_logging
from taskbatch.scheduler.controllers import BatchCliController, RunBatchCommand

click.rich_click.USE_MARKDOWN = True
BATCH_CONTROLLER = BatchCliController()


@click.group()
@click.version_option(version=__version__, prog_name="taskbatch")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    envvar="TASKBATCH_LOG_LEVEL",
    help="Log to stderr at this level. Logging is left unconfigured when omitted.",
)
def taskbatch(log_level: str | None) -> None:
    """Run batches of tasks with bounded concurrency and retries."""

    if log_level is not None:
        setup_logging(log_level.upper())


@taskbatch.command("run")
@click.argument("inputs", nargs=-1, required=True)
@click.option(
    "--processor",
    "processor",
    default="echo",
    show_default=True,
    help="Built-in processor name or `package.module:attribute`.",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Tasks running at once. Defaults to TASKBATCH_MAX_CONCURRENCY or 3.",
)
@click.option(
    "--retry-count",
    type=click.IntRange(min=0),
    default=None,
    help="Retries per failed task. Defaults to TASKBATCH_RETRY_COUNT or 2.",
)
@click.option(
    "--retry-delay",
    "retry_delay_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds before a failed task is retried. Defaults to 1.0.",
)
@click.option(
    "--task-timeout",
    "task_timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Per-attempt timeout in seconds; 0 disables it.",
)
@click.option(
    "--option",
    "options",
    multiple=True,
    help="Processor option as KEY=VALUE. Can be repeated.",
)
@click.option(
    "--progress/--no-progress",
    "show_progress",
    default=False,
    show_default=True,
    help="Print per-task progress lines.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Emit the exported results as JSON instead of a summary.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Write the JSON export to this file (implies --json).",
)
def run_batch(  # noqa: PLR0913
    inputs: tuple[str, ...],
    processor: str,
    max_concurrency: int | None,
    retry_count: int | None,
    retry_delay_seconds: float | None,
    task_timeout_seconds: float | None,
    options: tuple[str, ...],
    show_progress: bool,
    as_json: bool,
    output_path: Path | None,
) -> None:
    """Apply one processor to every input and report the outcome."""

    try:
        result = BATCH_CONTROLLER.run(
            RunBatchCommand(
                inputs=inputs,
                processor=processor,
                max_concurrency=max_concurrency,
                retry_count=retry_count,
                retry_delay_seconds=retry_delay_seconds,
                task_timeout_seconds=task_timeout_seconds,
                options=options,
                show_progress=show_progress,
                output_format="json" if as_json or output_path is not None else "table",
                output_path=output_path,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"{result.failed_tasks} task(s) failed.")


@taskbatch.command("processors")
def list_processors() -> None:
    """List built-in processors."""

    _emit_lines(BATCH_CONTROLLER.list_processors())


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    taskbatch()

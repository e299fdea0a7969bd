"""command line interface for covhtml"""

from typing import Optional
from pathlib import Path

import typer

from .analysis import print_summary_json, print_summary_rich
from .dispatch import DEFAULT_JOBS
from .gomod import GoModError
from .log import get_logger
from .profile import ProfileError
from .report import DEFAULT_OUTPUT_DIR, ReportOptions, build_report

EXIT_FATAL = 1
EXIT_PARTIAL = 2


app = typer.Typer(
    help="render go coverage profiles as browsable html reports",
    no_args_is_help=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


@app.command()
def report(
    cover_file: Path = typer.Argument(..., help="coverage profile (go test -coverprofile)"),
    output: Path = typer.Option(
        Path(DEFAULT_OUTPUT_DIR), "--output", "-o", help="output directory"
    ),
    jobs: int = typer.Option(
        DEFAULT_JOBS, "--jobs", "-j", min=1, help="number of render workers"
    ),
    package: Optional[str] = typer.Option(
        None, "--package", "-p", help="package root prefix (default: read from go.mod)"
    ),
    source_root: Optional[Path] = typer.Option(
        None, "--source-root", "-s", help="directory source files are resolved against"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="enable debug logging"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="list every file in the summary"
    ),
    json_output: bool = typer.Option(False, "--json", help="print the summary as JSON"),
):
    """generate an html coverage report from a coverage profile"""
    logger = get_logger(debug)

    options = ReportOptions(
        profile=cover_file,
        output_dir=output,
        jobs=jobs,
        package_name=package,
        source_root=source_root,
    )

    try:
        result = build_report(options, logger)
    except ProfileError as e:
        typer.echo(f"error parsing {cover_file}: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)
    except GoModError as e:
        typer.echo(f"error: {e} (use --package to set the package root)", err=True)
        raise typer.Exit(EXIT_FATAL)
    except OSError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(EXIT_FATAL)

    if json_output:
        print_summary_json(result.summary)
    else:
        print_summary_rich(result.summary, str(cover_file), verbose)
        typer.echo(f"wrote report to {result.output_dir}")

    if not result.ok:
        for failure in result.failures:
            typer.echo(f"warning: {failure}", err=True)
        typer.echo(
            f"{len(result.failures)} of {len(result.summary.modules)} files could not be rendered",
            err=True,
        )
        raise typer.Exit(EXIT_PARTIAL)


def main():
    """entry point for the covhtml script"""
    app()


if __name__ == "__main__":
    main()

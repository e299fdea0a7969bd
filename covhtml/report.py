"""end-to-end report generation: profile in, html directory out"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .core import GlobalSummary, aggregate
from .dispatch import (
    DEFAULT_JOBS,
    RenderDispatcher,
    RenderFailure,
    RenderRequest,
    render_request,
)
from .gomod import GoModError, find_gomod_dir, read_module_path, resolve_source_path
from .log import LOGGER_NAME
from .profile import read
from .render import write_index_file, write_static_files

DEFAULT_OUTPUT_DIR = "htmlcov"


@dataclass
class ReportOptions:
    """settings for one report run"""

    profile: Path
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    jobs: int = DEFAULT_JOBS
    # None means read it from go.mod, "" means identifiers are already paths
    package_name: Optional[str] = None
    source_root: Optional[Path] = None


@dataclass
class ReportResult:
    """outcome of a report run"""

    summary: GlobalSummary
    output_dir: Path
    package_name: str
    failures: List[RenderFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def resolve_package(options: ReportOptions) -> Tuple[str, Path]:
    """package root prefix and the directory module sources live under"""
    profile_dir = Path(options.profile).resolve().parent
    gomod_dir = find_gomod_dir(profile_dir)

    if options.package_name is not None:
        package_name = options.package_name
    elif gomod_dir is None:
        raise GoModError(f"no go.mod found in {profile_dir}")
    else:
        package_name = read_module_path(gomod_dir)

    source_root = options.source_root or gomod_dir or profile_dir
    return package_name, Path(source_root)


def build_report(
    options: ReportOptions,
    logger: Optional[logging.Logger] = None,
    render: Callable[[RenderRequest], object] = render_request,
) -> ReportResult:
    """
    parse the profile, aggregate it and write the html report

    profile, go.mod and top-level output errors propagate. per-file render
    errors are collected in the result instead.
    """
    logger = logger or logging.getLogger(LOGGER_NAME)

    profile = read(str(options.profile))
    logger.debug("parsed %d blocks, mode %s", len(profile), profile.mode)

    package_name, source_root = resolve_package(options)
    logger.debug("package name: %r, source root: %s", package_name, source_root)

    output_dir = Path(options.output_dir)
    with RenderDispatcher(options.jobs, render, logger) as dispatcher:
        summary = aggregate(profile, package_name, logger)

        output_dir.mkdir(parents=True, exist_ok=True)
        for item in summary.modules:
            dispatcher.submit(
                RenderRequest(
                    item=item,
                    output_path=output_dir / item.output_link,
                    source_path=resolve_source_path(item.display_file, source_root),
                )
            )

        write_index_file(output_dir, summary)
        write_static_files(output_dir)

        failures = dispatcher.join()

    logger.debug(
        "rendered %d of %d files", len(summary.modules) - len(failures), len(summary.modules)
    )
    return ReportResult(
        summary=summary,
        output_dir=output_dir,
        package_name=package_name,
        failures=failures,
    )

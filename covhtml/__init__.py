"""covhtml - render go coverage profiles as html reports"""

from .profile import (
    read,
    parse,
    parse_header,
    parse_record,
    CoverageBlock,
    Profile,
    ProfileError,
    MalformedHeader,
    MalformedRecord,
    InterleavedModule,
)
from .core import (
    Aggregator,
    GlobalSummary,
    LineRange,
    ModuleSummary,
    aggregate,
    flatten_filename,
    percentage,
)
from .dispatch import RenderDispatcher, RenderFailure, RenderRequest
from .report import ReportOptions, ReportResult, build_report

__all__ = [
    "read",
    "parse",
    "parse_header",
    "parse_record",
    "CoverageBlock",
    "Profile",
    "ProfileError",
    "MalformedHeader",
    "MalformedRecord",
    "InterleavedModule",
    "Aggregator",
    "GlobalSummary",
    "LineRange",
    "ModuleSummary",
    "aggregate",
    "flatten_filename",
    "percentage",
    "RenderDispatcher",
    "RenderFailure",
    "RenderRequest",
    "ReportOptions",
    "ReportResult",
    "build_report",
]

"""aggregation of coverage blocks into per-module and global summaries"""

import bisect
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .profile import CoverageBlock, InterleavedModule, Profile

INDEX_FILENAME = "index.html"
LINK_SUFFIX = ".html"
LINK_HASH_LENGTH = 8


def percentage(numerator: int, denominator: int) -> int:
    """
    integer percentage rounded to nearest, halves away from zero.
    a zero denominator yields 0.
    """
    if denominator == 0:
        return 0
    # exact integer form of floor(n / d * 100 + 0.5)
    return (200 * numerator + denominator) // (2 * denominator)


def format_percentage(numerator: int, denominator: int, precision: int = 0) -> str:
    """percentage as text with the given number of decimals"""
    if precision <= 0:
        return str(percentage(numerator, denominator))
    value = numerator / denominator * 100 if denominator else 0.0
    return f"{value:.{precision}f}"


def flatten_filename(filename: str) -> str:
    """
    flatten a path into a single file name

    github.com/user/repo/file.go -> github_com_user_repo_file_go
    """
    return filename.replace(".", "_").replace("/", "_")


def display_path(module: str, package_name: str) -> str:
    """strip the package root prefix from a module identifier"""
    if package_name:
        prefix = package_name.rstrip("/") + "/"
        if module.startswith(prefix):
            return module[len(prefix) :]
    return module


@dataclass(frozen=True)
class LineRange:
    """inclusive 1-based line span"""

    start: int
    end: int

    def __contains__(self, line: int) -> bool:
        return self.start <= line <= self.end


def _normalize(ranges: Iterable[LineRange]) -> List[LineRange]:
    """sort and coalesce overlapping or adjacent ranges"""
    merged: List[LineRange] = []
    for r in sorted(ranges, key=lambda r: (r.start, r.end)):
        if merged and r.start <= merged[-1].end + 1:
            last = merged[-1]
            merged[-1] = LineRange(last.start, max(last.end, r.end))
        else:
            merged.append(r)
    return merged


def _subtract(ranges: List[LineRange], holes: List[LineRange]) -> List[LineRange]:
    """remove every line covered by holes from ranges (both normalized)"""
    result = []
    for r in ranges:
        start = r.start
        for h in holes:
            if h.end < start or h.start > r.end:
                continue
            if h.start > start:
                result.append(LineRange(start, h.start - 1))
            start = max(start, h.end + 1)
            if start > r.end:
                break
        if start <= r.end:
            result.append(LineRange(start, r.end))
    return result


def _contains(ranges: Tuple[LineRange, ...], line: int) -> bool:
    # ranges are sorted and disjoint, so only the last range starting at or
    # before the line can contain it
    idx = bisect.bisect_right(ranges, line, key=lambda r: r.start) - 1
    return idx >= 0 and line in ranges[idx]


@dataclass(frozen=True)
class ModuleSummary:
    """finalized coverage statistics for one source file"""

    module: str
    display_file: str
    output_link: str
    reached: int
    missed: int
    percentage: int
    reached_ranges: Tuple[LineRange, ...] = ()
    missed_ranges: Tuple[LineRange, ...] = ()

    @property
    def statement_total(self) -> int:
        return self.reached + self.missed

    def is_reached(self, line: int) -> bool:
        return _contains(self.reached_ranges, line)

    def is_missed(self, line: int) -> bool:
        return _contains(self.missed_ranges, line)


@dataclass(frozen=True)
class GlobalSummary:
    """pooled totals across every module of a profile"""

    mode: str
    reached: int = 0
    missed: int = 0
    percentage: int = 0
    modules: Tuple[ModuleSummary, ...] = ()

    @property
    def statement_total(self) -> int:
        return self.reached + self.missed

    def by_module(self) -> Dict[str, ModuleSummary]:
        """mapping from module identifier to its summary"""
        return {m.module: m for m in self.modules}


@dataclass
class _Group:
    """accumulator for the contiguous run of blocks of one module"""

    module: str
    reached: int = 0
    missed: int = 0
    reached_ranges: List[LineRange] = field(default_factory=list)
    missed_ranges: List[LineRange] = field(default_factory=list)

    def fold(self, block: CoverageBlock):
        span = LineRange(block.start_line, block.end_line)
        if block.reached:
            self.reached += block.statement_count
            self.reached_ranges.append(span)
        else:
            self.missed += block.statement_count
            self.missed_ranges.append(span)


class Aggregator:
    """
    single pass fold over a module-grouped block sequence

    the aggregator is either between groups (no active group) or inside one.
    a group is finalized exactly once, when a block of another module arrives
    or when finish() is called.
    """

    def __init__(self, package_name: str = "", logger: Optional[logging.Logger] = None):
        self.package_name = package_name
        self.logger = logger or logging.getLogger("covhtml")
        self._group: Optional[_Group] = None
        self._summaries: Dict[str, ModuleSummary] = {}
        self._links: Dict[str, str] = {}
        self._total_reached = 0
        self._total_missed = 0
        self._finished = False

    def add(self, block: CoverageBlock):
        """fold one block into the active group"""
        if self._finished:
            raise RuntimeError("aggregator already finished")

        if self._group is not None and self._group.module != block.module:
            self._finalize(self._group)
            self._group = None

        if self._group is None:
            if block.module in self._summaries:
                raise InterleavedModule(
                    f"blocks for {block.module!r} are not contiguous in the profile"
                )
            self._group = _Group(block.module)

        self._group.fold(block)

    def add_all(self, blocks: Iterable[CoverageBlock]):
        for block in blocks:
            self.add(block)

    def finish(self, mode: str) -> GlobalSummary:
        """finalize the last group and build the global summary"""
        if self._group is not None:
            self._finalize(self._group)
            self._group = None
        self._finished = True

        modules = tuple(sorted(self._summaries.values(), key=lambda m: m.display_file))
        total = GlobalSummary(
            mode=mode,
            reached=self._total_reached,
            missed=self._total_missed,
            percentage=percentage(
                self._total_reached, self._total_reached + self._total_missed
            ),
            modules=modules,
        )
        self.logger.debug(
            "total: %d modules, reached=%d missed=%d (%d%%)",
            len(modules),
            total.reached,
            total.missed,
            total.percentage,
        )
        return total

    @property
    def summaries(self) -> Dict[str, ModuleSummary]:
        """finalized summaries keyed by module identifier"""
        return dict(self._summaries)

    def _finalize(self, group: _Group) -> ModuleSummary:
        total = group.reached + group.missed
        if total == 0:
            self.logger.warning("module %s has no statements", group.module)

        reached_ranges = _normalize(group.reached_ranges)
        # a line shared by a reached and a missed block counts as reached
        missed_ranges = _subtract(_normalize(group.missed_ranges), reached_ranges)

        display_file = display_path(group.module, self.package_name)
        summary = ModuleSummary(
            module=group.module,
            display_file=display_file,
            output_link=self._assign_link(group.module, display_file),
            reached=group.reached,
            missed=group.missed,
            percentage=percentage(group.reached, total),
            reached_ranges=tuple(reached_ranges),
            missed_ranges=tuple(missed_ranges),
        )
        self._summaries[group.module] = summary
        self._total_reached += group.reached
        self._total_missed += group.missed

        self.logger.debug(
            "summary: module=%s reached=%d missed=%d (%d%%)",
            group.module,
            summary.reached,
            summary.missed,
            summary.percentage,
        )
        return summary

    def _assign_link(self, module: str, display_file: str) -> str:
        base = flatten_filename(display_file)
        link = base + LINK_SUFFIX
        attempt = 0
        while link in self._links or link == INDEX_FILENAME:
            seed = display_file if attempt == 0 else f"{display_file}#{attempt}"
            digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:LINK_HASH_LENGTH]
            link = f"{base}__{digest}{LINK_SUFFIX}"
            attempt += 1
        if attempt:
            self.logger.warning(
                "output name for %s collides with %s, using %s",
                module,
                self._links.get(base + LINK_SUFFIX, INDEX_FILENAME),
                link,
            )
        self._links[link] = module
        return link


def aggregate(
    profile: Profile, package_name: str = "", logger: Optional[logging.Logger] = None
) -> GlobalSummary:
    """fold a parsed profile into its global summary"""
    aggregator = Aggregator(package_name, logger)
    aggregator.add_all(profile.blocks)
    return aggregator.finish(profile.mode)

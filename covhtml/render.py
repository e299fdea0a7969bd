"""html rendering of coverage summaries"""

import html
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from .core import INDEX_FILENAME, GlobalSummary, ModuleSummary, format_percentage

STYLE_FILENAME = "style.css"
SCRIPT_FILENAME = "coverage_html.js"
IGNORE_FILENAME = ".gitignore"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M %z"

LINE_REACHED = "run"
LINE_MISSED = "mis"
LINE_PLAIN = "pln"

# Progress bar thresholds
LOW_COVERAGE = 30
MEDIUM_COVERAGE = 70


class RenderError(Exception):
    """error while producing a report page"""

    pass


@dataclass
class LineItem:
    """one annotated source line"""

    number: int
    text: str
    kind: str

    @property
    def css_class(self) -> str:
        if self.kind == LINE_MISSED:
            return "mis show_mis"
        return self.kind


def read_lines(path: Union[str, Path]) -> List[str]:
    """source lines without trailing newlines"""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\r\n") for line in f]


def classify(item: ModuleSummary, number: int) -> str:
    """reached takes precedence over missed"""
    if item.is_reached(number):
        return LINE_REACHED
    if item.is_missed(number):
        return LINE_MISSED
    return LINE_PLAIN


def annotate(item: ModuleSummary, lines: List[str]) -> List[LineItem]:
    return [
        LineItem(number=i, text=text, kind=classify(item, i))
        for i, text in enumerate(lines, 1)
    ]


def progress_bar_class(percent: int) -> str:
    if percent < LOW_COVERAGE:
        return "bg-danger"
    elif percent < MEDIUM_COVERAGE:
        return "bg-warning"
    return "bg-success"


def strftime(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT).strip()


def _now() -> datetime:
    return datetime.now().astimezone()


def _head(title: str) -> str:
    return (
        "<!DOCTYPE html>\n<html lang='en'>\n<head>\n"
        "<meta charset='utf-8'>\n"
        "<meta name='viewport' content='width=device-width, initial-scale=1'>\n"
        f"<title>{html.escape(title)}</title>\n"
        f"<link rel='stylesheet' href='{STYLE_FILENAME}'>\n"
        f"<script src='{SCRIPT_FILENAME}' defer></script>\n"
        "</head>\n"
    )


def _progress(totals: Union[GlobalSummary, ModuleSummary]) -> str:
    percent = totals.percentage
    # bar label is the rounded figure, the tooltip keeps two decimals
    exact = format_percentage(totals.reached, totals.statement_total, 2)
    return (
        f"<div class='progress' title='{exact}%'>"
        f"<div class='progress-bar {progress_bar_class(percent)}' "
        f"style='width: {percent}%'>{percent}%</div></div>"
    )


def render_index(summary: GlobalSummary, created_at: Optional[datetime] = None) -> str:
    """index page listing every module"""
    created_at = created_at or _now()
    parts = [_head("Coverage report")]
    parts.append("<body>\n<header>\n<h1>Coverage report</h1>\n")
    parts.append(
        "<table class='totals'>"
        f"<tr><th>mode</th><td>{html.escape(summary.mode)}</td></tr>"
        f"<tr><th>statements</th><td>{summary.statement_total}</td></tr>"
        f"<tr><th>reached</th><td>{summary.reached}</td></tr>"
        f"<tr><th>missed</th><td>{summary.missed}</td></tr>"
        f"<tr><th>coverage</th><td>{_progress(summary)}</td></tr>"
        "</table>\n</header>\n"
    )

    parts.append(
        "<main>\n<table class='index sortable'>\n<thead><tr>"
        "<th data-sort='text'>File</th>"
        "<th data-sort='num'>Statements</th>"
        "<th data-sort='num'>Reached</th>"
        "<th data-sort='num'>Missed</th>"
        "<th data-sort='num'>Coverage</th>"
        "</tr></thead>\n<tbody>\n"
    )
    for item in summary.modules:
        parts.append(
            "<tr>"
            f"<td class='name'><a href='{html.escape(item.output_link)}'>"
            f"{html.escape(item.display_file)}</a></td>"
            f"<td class='num'>{item.statement_total}</td>"
            f"<td class='num'>{item.reached}</td>"
            f"<td class='num'>{item.missed}</td>"
            f"<td class='num' data-value='{item.percentage}'>{_progress(item)}</td>"
            "</tr>\n"
        )
    parts.append(
        "</tbody>\n<tfoot><tr>"
        "<td>Total</td>"
        f"<td class='num'>{summary.statement_total}</td>"
        f"<td class='num'>{summary.reached}</td>"
        f"<td class='num'>{summary.missed}</td>"
        f"<td class='num'>{summary.percentage}%</td>"
        "</tr></tfoot>\n</table>\n</main>\n"
    )
    parts.append(f"<footer>created at {html.escape(strftime(created_at))}</footer>\n")
    parts.append("</body>\n</html>\n")
    return "".join(parts)


def render_file(
    item: ModuleSummary, lines: List[LineItem], created_at: Optional[datetime] = None
) -> str:
    """annotated source page for one module"""
    created_at = created_at or _now()
    parts = [_head(f"Coverage for {item.display_file}")]
    parts.append(
        "<body>\n<header>\n"
        f"<p class='crumbs'><a href='{INDEX_FILENAME}'>index</a> / "
        f"<strong>{html.escape(item.display_file)}</strong></p>\n"
        f"<h1>Coverage for {html.escape(item.display_file)}</h1>\n"
        "<table class='totals'>"
        f"<tr><th>statements</th><td>{item.statement_total}</td></tr>"
        f"<tr><th>reached</th><td>{item.reached}</td></tr>"
        f"<tr><th>missed</th><td>{item.missed}</td></tr>"
        f"<tr><th>coverage</th><td>{_progress(item)}</td></tr>"
        "</table>\n"
        "<label><input type='checkbox' id='toggle-missed' checked> highlight missed</label>\n"
        "</header>\n<main>\n<table class='source'>\n<tbody>\n"
    )
    for line in lines:
        parts.append(
            f"<tr class='{line.css_class}' id='L{line.number}'>"
            f"<td class='n'><a href='#L{line.number}'>{line.number}</a></td>"
            f"<td class='t'><pre>{html.escape(line.text)}</pre></td></tr>\n"
        )
    parts.append("</tbody>\n</table>\n</main>\n")
    parts.append(f"<footer>created at {html.escape(strftime(created_at))}</footer>\n")
    parts.append("</body>\n</html>\n")
    return "".join(parts)


def write_index_file(output_dir: Union[str, Path], summary: GlobalSummary) -> Path:
    path = Path(output_dir) / INDEX_FILENAME
    path.write_text(render_index(summary), encoding="utf-8")
    return path


def write_profile_file(
    output_path: Union[str, Path], item: ModuleSummary, source_path: Union[str, Path]
) -> Path:
    """read the module source and write its annotated page"""
    try:
        lines = read_lines(source_path)
    except OSError as e:
        raise RenderError(f"cannot read source {source_path}: {e}") from e

    try:
        page = render_file(item, annotate(item, lines))
    except (ValueError, TypeError) as e:
        raise RenderError(f"cannot render {item.display_file}: {e}") from e

    path = Path(output_path)
    try:
        path.write_text(page, encoding="utf-8")
    except OSError as e:
        raise RenderError(f"cannot write {path}: {e}") from e
    return path


def write_static_files(output_dir: Union[str, Path]):
    """stylesheet, script and a .gitignore that hides the report from git"""
    output_dir = Path(output_dir)
    (output_dir / STYLE_FILENAME).write_text(STYLESHEET, encoding="utf-8")
    (output_dir / SCRIPT_FILENAME).write_text(SCRIPT, encoding="utf-8")
    (output_dir / IGNORE_FILENAME).write_text("*\n", encoding="utf-8")


STYLESHEET = """\
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
       margin: 0 auto; max-width: 1100px; padding: 1rem; color: #212529; }
a { color: #0d6efd; text-decoration: none; }
a:hover { text-decoration: underline; }
h1 { font-size: 1.5rem; }
table { border-collapse: collapse; }
table.totals th { text-align: left; padding-right: 1rem; font-weight: 600; }
table.index { width: 100%; }
table.index th, table.index td { padding: .3rem .5rem; border-bottom: 1px solid #dee2e6; }
table.index th[data-sort] { cursor: pointer; user-select: none; }
table.index th.asc::after { content: " \\25B2"; }
table.index th.desc::after { content: " \\25BC"; }
td.num { text-align: right; }
.progress { background: #e9ecef; border-radius: .25rem; min-width: 120px; height: 1.1rem; }
.progress-bar { height: 100%; border-radius: .25rem; color: #fff;
                font-size: .75rem; text-align: center; white-space: nowrap; }
.bg-danger { background: #dc3545; }
.bg-warning { background: #ffc107; color: #212529; }
.bg-success { background: #198754; }
table.source { width: 100%; font-family: SFMono-Regular, Menlo, Consolas, monospace;
               font-size: .8rem; }
table.source pre { margin: 0; white-space: pre-wrap; }
table.source td.n { text-align: right; padding-right: .6rem; color: #6c757d;
                    width: 3rem; user-select: none; }
tr.run td.t { background: #d1e7dd; }
tr.mis.show_mis td.t { background: #f8d7da; }
footer { margin-top: 1rem; color: #6c757d; font-size: .8rem; }
"""

SCRIPT = """\
(function () {
  "use strict";

  function toggleMissed(event) {
    var show = event.target.checked;
    document.querySelectorAll("tr.mis").forEach(function (row) {
      row.classList.toggle("show_mis", show);
    });
  }

  function cellValue(row, idx, kind) {
    var cell = row.cells[idx];
    if (kind === "num") {
      var raw = cell.getAttribute("data-value") || cell.textContent;
      return parseFloat(raw) || 0;
    }
    return cell.textContent.trim().toLowerCase();
  }

  function sortBy(table, header, idx) {
    var kind = header.getAttribute("data-sort");
    var asc = !header.classList.contains("asc");
    table.querySelectorAll("th").forEach(function (th) {
      th.classList.remove("asc", "desc");
    });
    header.classList.add(asc ? "asc" : "desc");
    var body = table.tBodies[0];
    var rows = Array.prototype.slice.call(body.rows);
    rows.sort(function (a, b) {
      var x = cellValue(a, idx, kind), y = cellValue(b, idx, kind);
      if (x < y) return asc ? -1 : 1;
      if (x > y) return asc ? 1 : -1;
      return 0;
    });
    rows.forEach(function (row) { body.appendChild(row); });
  }

  document.addEventListener("DOMContentLoaded", function () {
    var toggle = document.getElementById("toggle-missed");
    if (toggle) {
      toggle.addEventListener("change", toggleMissed);
    }
    document.querySelectorAll("table.sortable").forEach(function (table) {
      table.querySelectorAll("th[data-sort]").forEach(function (th, idx) {
        th.addEventListener("click", function () { sortBy(table, th, idx); });
      });
    });
  });
})();
"""

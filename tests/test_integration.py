"""integration tests for the complete report pipeline"""

import logging
import threading

import pytest

from covhtml import (
    InterleavedModule,
    MalformedRecord,
    ReportOptions,
    build_report,
    percentage,
)
from covhtml.gomod import GoModError


class TestBuildReport:
    """test build_report end to end"""

    def create_project(self, root, files=6, blocks=4):
        """write a go.mod, sources and a matching profile"""
        (root / "go.mod").write_text("module example.com/big\n")
        lines = ["mode: count"]
        for f in range(files):
            pkg = root / f"pkg{f % 3}"
            pkg.mkdir(exist_ok=True)
            source = "\n".join(f"line {n}" for n in range(1, blocks * 3 + 1)) + "\n"
            (pkg / f"file{f}.go").write_text(source)
            for b in range(blocks):
                start = b * 3 + 1
                count = 0 if (f + b) % 3 == 0 else f + b
                lines.append(
                    f"example.com/big/pkg{f % 3}/file{f}.go:{start}.1,{start + 2}.2 {b + 1} {count}"
                )
        profile = root / "cover.out"
        profile.write_text("\n".join(lines) + "\n")
        return profile

    def test_realistic_report(self, tmp_path):
        """test totals, ordering and written pages"""
        profile = self.create_project(tmp_path)
        out = tmp_path / "report"

        result = build_report(ReportOptions(profile=profile, output_dir=out, jobs=3))

        summary = result.summary
        assert result.ok
        assert result.package_name == "example.com/big"
        assert len(summary.modules) == 6
        assert summary.mode == "count"

        names = [m.display_file for m in summary.modules]
        assert names == sorted(names)
        assert summary.reached == sum(m.reached for m in summary.modules)
        assert summary.missed == sum(m.missed for m in summary.modules)
        assert summary.percentage == percentage(summary.reached, summary.statement_total)

        for item in summary.modules:
            page = (out / item.output_link).read_text()
            assert item.display_file in page
        assert (out / "index.html").exists()

    def test_custom_renderer_sees_every_module(self, tmp_path):
        """test one request per module reaches the renderer"""
        profile = self.create_project(tmp_path, files=9)
        seen = []
        lock = threading.Lock()

        def render(request):
            with lock:
                seen.append(request.item.display_file)
            assert request.source_path == tmp_path.resolve() / request.item.display_file

        result = build_report(
            ReportOptions(profile=profile, output_dir=tmp_path / "out", jobs=4),
            render=render,
        )

        assert result.ok, result.failures
        assert sorted(seen) == [m.display_file for m in result.summary.modules]

    def test_render_failures_collected(self, tmp_path):
        """test failing pages are reported while the rest complete"""
        profile = self.create_project(tmp_path)

        def render(request):
            if request.item.display_file.startswith("pkg1/"):
                raise OSError("disk full")

        result = build_report(
            ReportOptions(profile=profile, output_dir=tmp_path / "out"), render=render
        )

        assert not result.ok
        assert len(result.failures) == 2
        assert all("pkg1/" in f.module for f in result.failures)
        assert (tmp_path / "out" / "index.html").exists()

    def test_malformed_record_writes_nothing(self, tmp_path):
        """test parse errors abort before the output directory exists"""
        profile = self.create_project(tmp_path)
        with open(profile, "a") as f:
            f.write("example.com/big/pkg9/late.go:1.1,2.x 1 1\n")
        out = tmp_path / "out"

        with pytest.raises(MalformedRecord):
            build_report(ReportOptions(profile=profile, output_dir=out))

        assert not out.exists()

    def test_interleaved_module_writes_nothing(self, tmp_path):
        """test a contiguity violation aborts before any page is written"""
        (tmp_path / "go.mod").write_text("module example.com/x\n")
        profile = tmp_path / "cover.out"
        profile.write_text(
            "mode: set\n"
            "example.com/x/a.go:1.1,2.1 1 1\n"
            "example.com/x/b.go:1.1,2.1 1 1\n"
            "example.com/x/a.go:4.1,5.1 1 0\n"
        )
        out = tmp_path / "out"

        with pytest.raises(InterleavedModule):
            build_report(ReportOptions(profile=profile, output_dir=out))

        assert not out.exists()

    def test_missing_gomod(self, tmp_path):
        profile = tmp_path / "cover.out"
        profile.write_text("mode: set\n")

        with pytest.raises(GoModError):
            build_report(ReportOptions(profile=profile, output_dir=tmp_path / "out"))

    def test_empty_profile(self, tmp_path):
        """test a header-only profile still produces an index"""
        profile = tmp_path / "cover.out"
        profile.write_text("mode: set\n")
        out = tmp_path / "out"

        result = build_report(
            ReportOptions(profile=profile, output_dir=out, package_name="")
        )

        assert result.ok
        assert result.summary.modules == ()
        assert result.summary.percentage == 0
        assert (out / "index.html").exists()

    def test_logger_is_injected(self, tmp_path, caplog):
        """test debug records go to the supplied logger"""
        profile = self.create_project(tmp_path, files=2)
        logger = logging.getLogger("covhtml_integration_test")

        with caplog.at_level(logging.DEBUG, logger="covhtml_integration_test"):
            build_report(
                ReportOptions(profile=profile, output_dir=tmp_path / "out"),
                logger=logger,
                render=lambda request: None,
            )

        assert "parsed 8 blocks" in caplog.text
        assert "summary: module=example.com/big/pkg0/file0.go" in caplog.text

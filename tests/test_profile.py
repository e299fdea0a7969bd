"""tests for the coverage profile parser"""

import tempfile
from io import StringIO

import pytest

from covhtml.profile import (
    CoverageBlock,
    MalformedHeader,
    MalformedRecord,
    ProfileError,
    parse,
    parse_header,
    parse_record,
    read,
)


SAMPLE_PROFILE = """mode: set
example.com/demo/pkg/a.go:3.13,5.2 1 1
example.com/demo/pkg/a.go:7.14,9.16 2 0
example.com/demo/pkg/b.go:4.20,6.2 3 12
"""


class TestHeader:
    """test mode header parsing"""

    def test_mode_names(self):
        """test the mode is taken verbatim"""
        assert parse_header("mode: set") == "set"
        assert parse_header("mode: atomic\n") == "atomic"
        assert parse_header("mode: count\r\n") == "count"

    def test_missing_prefix(self):
        """test a header without the mode prefix is rejected"""
        with pytest.raises(MalformedHeader):
            parse_header("set")

        with pytest.raises(MalformedHeader):
            parse_header("example.com/demo/a.go:1.1,2.1 1 1")

    def test_empty_header(self):
        """test empty input and empty mode name"""
        with pytest.raises(MalformedHeader):
            parse_header("")

        with pytest.raises(MalformedHeader):
            parse_header("mode: ")

    def test_header_errors_are_profile_errors(self):
        """test the error hierarchy"""
        with pytest.raises(ProfileError):
            parse("no header here\n")


class TestRecord:
    """test record line parsing"""

    def test_full_record(self):
        """test every field of a well formed record"""
        block = parse_record("example.com/demo/a.go:12.34,15.2 3 1")

        assert block == CoverageBlock(
            module="example.com/demo/a.go",
            start_line=12,
            start_column=34,
            end_line=15,
            end_column=2,
            statement_count=3,
            reached=True,
        )

    def test_reached_flag(self):
        """test only a literal 0 means unreached"""
        assert parse_record("a.go:1.1,2.1 1 0").reached is False
        assert parse_record("a.go:1.1,2.1 1 1").reached is True
        assert parse_record("a.go:1.1,2.1 1 42").reached is True

    def test_extra_whitespace(self):
        """test fields may be separated by any whitespace"""
        block = parse_record("a.go:1.1,2.1\t4   0\n")
        assert block.statement_count == 4
        assert block.reached is False

    def test_single_line_block(self):
        """test a block may start and end on the same line"""
        block = parse_record("a.go:7.3,7.20 1 1")
        assert block.start_line == block.end_line == 7

    @pytest.mark.parametrize(
        "line",
        [
            "a.go:1.1,3.2 2",  # too few fields
            "a.go1.1,3.2 2 1",  # no ':'
            ":1.1,3.2 2 1",  # empty module
            "a.go:1.1 3.2 2 1",  # no ','
            "a.go:11,3.2 2 1",  # no '.' in start
            "a.go:1.1,32 2 1",  # no '.' in end
            "a.go:1.x,3.2 2 1",  # non-numeric column
            "a.go:one.1,3.2 2 1",  # non-numeric line
            "a.go:1.1,3.2 two 1",  # non-numeric statements
            "a.go:1.1,3.2 -2 1",  # negative statements
            "a.go:5.1,3.2 1 1",  # starts after it ends
        ],
    )
    def test_malformed_records(self, line):
        """test grammar violations raise MalformedRecord"""
        with pytest.raises(MalformedRecord):
            parse_record(line)

    def test_error_carries_line_number(self):
        """test the failing line is reported"""
        with pytest.raises(MalformedRecord) as excinfo:
            parse_record("a.go:1.x,3.2 2 1", 7)

        assert excinfo.value.line_number == 7
        assert "line 7" in str(excinfo.value)
        assert excinfo.value.line == "a.go:1.x,3.2 2 1"


class TestProfile:
    """test whole profile parsing"""

    def test_parse_sample(self):
        """test a small realistic profile"""
        profile = parse(SAMPLE_PROFILE)

        assert profile.mode == "set"
        assert len(profile) == 3
        assert profile.blocks[1].reached is False
        assert profile.blocks[2].statement_count == 3
        assert [b.module for b in profile.blocks][::2] == [
            "example.com/demo/pkg/a.go",
            "example.com/demo/pkg/b.go",
        ]

    def test_header_only(self):
        """test a profile with no records"""
        profile = parse("mode: atomic\n")

        assert profile.mode == "atomic"
        assert profile.blocks == []

    def test_blank_lines_are_skipped(self):
        """test trailing and interior blank lines"""
        profile = parse("mode: set\na.go:1.1,2.1 1 1\n\nb.go:1.1,2.1 1 0\n\n")
        assert len(profile) == 2

    def test_malformed_record_aborts_parse(self):
        """test the first bad record fails the whole parse with its line number"""
        text = "mode: set\na.go:1.1,2.1 1 1\na.go:3.1,x.1 1 1\nb.go:1.1,2.1 1 1\n"

        with pytest.raises(MalformedRecord) as excinfo:
            parse(text)

        assert excinfo.value.line_number == 3

    def test_read_stream(self):
        """test reading from a text stream"""
        profile = read(StringIO(SAMPLE_PROFILE))
        assert len(profile) == 3

    def test_read_file(self):
        """test reading from a path"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".out", delete=False) as f:
            f.write(SAMPLE_PROFILE)
            temp_path = f.name

        profile = read(temp_path)
        assert profile.mode == "set"
        assert len(profile) == 3

    def test_read_missing_file(self):
        """test a missing profile raises OSError"""
        with pytest.raises(FileNotFoundError):
            read("/nonexistent/cover.out")

    def test_read_file_invalid_utf8_record(self):
        """test undecodable bytes in a record report the line number"""
        with tempfile.NamedTemporaryFile(mode="wb", suffix=".out", delete=False) as f:
            f.write(b"mode: set\nm/\xff.go:1.1,2.1 1 1\n")
            temp_path = f.name

        with pytest.raises(MalformedRecord) as excinfo:
            read(temp_path)

        assert excinfo.value.line_number == 2
        assert "utf-8" in str(excinfo.value)

    def test_read_file_invalid_utf8_header(self):
        """test undecodable bytes in the header raise MalformedHeader"""
        with tempfile.NamedTemporaryFile(mode="wb", suffix=".out", delete=False) as f:
            f.write(b"mode: s\xffet\nm/a.go:1.1,2.1 1 1\n")
            temp_path = f.name

        with pytest.raises(MalformedHeader):
            read(temp_path)

    def test_read_file_crlf(self):
        """test windows line endings are accepted"""
        with tempfile.NamedTemporaryFile(mode="wb", suffix=".out", delete=False) as f:
            f.write(b"mode: set\r\nm/a.go:1.1,2.1 1 1\r\n")
            temp_path = f.name

        profile = read(temp_path)
        assert profile.mode == "set"
        assert profile.blocks[0].module == "m/a.go"

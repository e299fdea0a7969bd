#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Parser for line-oriented Go coverage profiles.

A profile is the text written by `go test -coverprofile=cover.out`. The first
line declares the coverage mode, every following line is one covered block:

    mode: set
    github.com/user/repo/pkg/file.go:12.34,15.2 3 1

The record fields are `<module>:<startLine>.<startCol>,<endLine>.<endCol>`,
the number of statements in the block, and the execution count (or 0/1 in
`set` mode). Any count other than "0" means the block was reached.

Example Usage:
    try:
        profile = covhtml.read("cover.out")
        print(f"mode {profile.mode}, {len(profile.blocks)} blocks")
    except covhtml.ProfileError as e:
        print(f"Error reading profile: {e}")
"""

import dataclasses
from io import StringIO
from typing import BinaryIO, List, Optional, TextIO, Tuple, Union

# --- Constants ---
_MODE_PREFIX = "mode: "
_MIN_RECORD_FIELDS = 3
_UNREACHED_FLAG = "0"
_ENCODING = "utf-8"


# --- Public API ---


class ProfileError(Exception):
    """Base exception for coverage profile parsing errors."""

    pass


class MalformedHeader(ProfileError):
    """The first line of the profile is not a `mode: <name>` header."""

    pass


class MalformedRecord(ProfileError):
    """A record line does not match the profile grammar."""

    def __init__(self, message: str, line_number: Optional[int] = None, line: str = ""):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
        self.line = line


class InterleavedModule(ProfileError):
    """Blocks of one module appear again after another module's blocks."""

    pass


@dataclasses.dataclass(frozen=True)
class CoverageBlock:
    """One parsed coverage record: a source span and whether it ran."""

    module: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    statement_count: int
    reached: bool


@dataclasses.dataclass
class Profile:
    """A fully parsed coverage profile."""

    mode: str
    blocks: List[CoverageBlock]

    def __len__(self) -> int:
        return len(self.blocks)


# --- Parser Implementation ---


class _Parser:
    @staticmethod
    def parse_stream(stream: Union[TextIO, BinaryIO]) -> Profile:
        lines = iter(stream)
        mode = _Parser.parse_header(_Parser._decode(next(lines, ""), 1))

        blocks: List[CoverageBlock] = []
        for line_number, raw in enumerate(lines, 2):
            line = _Parser._decode(raw, line_number)
            if not line.strip():
                continue
            blocks.append(_Parser.parse_record(line, line_number))

        return Profile(mode=mode, blocks=blocks)

    @staticmethod
    def _decode(raw: Union[str, bytes], line_number: int) -> str:
        if isinstance(raw, str):
            return raw
        try:
            return raw.decode(_ENCODING)
        except UnicodeDecodeError as e:
            if line_number == 1:
                raise MalformedHeader(f"line 1: not valid {_ENCODING}: {e}") from e
            raise MalformedRecord(f"not valid {_ENCODING}: {e}", line_number) from e

    @staticmethod
    def parse_header(line: str) -> str:
        line = line.rstrip("\r\n")
        if not line.startswith(_MODE_PREFIX):
            raise MalformedHeader(
                f"Invalid or missing mode header: expected '{_MODE_PREFIX}<name>', got {line!r}"
            )
        mode = line[len(_MODE_PREFIX) :].strip()
        if not mode:
            raise MalformedHeader("Empty coverage mode in header.")
        return mode

    @staticmethod
    def parse_record(line: str, line_number: Optional[int] = None) -> CoverageBlock:
        fields = line.split()
        if len(fields) < _MIN_RECORD_FIELDS:
            raise MalformedRecord(
                f"expected {_MIN_RECORD_FIELDS} fields, got {len(fields)}",
                line_number,
                line,
            )

        location, statements, flag = fields[0], fields[1], fields[2]

        # module paths may contain ':' on some platforms, the span never does
        module, sep, span = location.rpartition(":")
        if not sep or not module:
            raise MalformedRecord(f"missing ':' in {location!r}", line_number, line)

        start, sep, end = span.partition(",")
        if not sep:
            raise MalformedRecord(f"missing ',' in span {span!r}", line_number, line)

        start_line, start_column = _Parser._parse_position(start, line_number, line)
        end_line, end_column = _Parser._parse_position(end, line_number, line)
        if start_line > end_line:
            raise MalformedRecord(
                f"block starts after it ends ({start_line} > {end_line})",
                line_number,
                line,
            )

        return CoverageBlock(
            module=module,
            start_line=start_line,
            start_column=start_column,
            end_line=end_line,
            end_column=end_column,
            statement_count=_Parser._parse_unsigned(statements, line_number, line),
            reached=flag != _UNREACHED_FLAG,
        )

    @staticmethod
    def _parse_position(
        text: str, line_number: Optional[int], line: str
    ) -> Tuple[int, int]:
        row, sep, column = text.partition(".")
        if not sep:
            raise MalformedRecord(f"missing '.' in position {text!r}", line_number, line)
        return (
            _Parser._parse_unsigned(row, line_number, line),
            _Parser._parse_unsigned(column, line_number, line),
        )

    @staticmethod
    def _parse_unsigned(text: str, line_number: Optional[int], line: str) -> int:
        # isdigit() alone accepts superscripts and other non-ASCII digits
        if not (text.isascii() and text.isdigit()):
            raise MalformedRecord(f"expected a number, got {text!r}", line_number, line)
        return int(text)


def parse_header(line: str) -> str:
    """Returns the mode name from a `mode: <name>` header line."""
    return _Parser.parse_header(line)


def parse_record(line: str, line_number: Optional[int] = None) -> CoverageBlock:
    """Parses a single record line into a CoverageBlock."""
    return _Parser.parse_record(line, line_number)


def parse(text: str) -> Profile:
    """Parses a whole profile held in memory."""
    return _Parser.parse_stream(StringIO(text))


def read(filepath_or_stream: Union[str, TextIO, BinaryIO]) -> Profile:
    """
    Reads and parses a coverage profile from a path or a text stream.

    The whole profile is parsed before returning, so a malformed record
    anywhere in the input fails the read without yielding partial data.

    Args:
        filepath_or_stream: Path to the profile or an open text or binary stream.

    Returns:
        A Profile object.

    Raises:
        MalformedHeader: If the first line is not a mode header.
        MalformedRecord: If any record line fails to parse or decode.
        OSError: If the file cannot be opened.
    """
    if isinstance(filepath_or_stream, str):
        # binary so undecodable bytes are reported with their line number
        with open(filepath_or_stream, "rb") as f:
            return _Parser.parse_stream(f)
    return _Parser.parse_stream(filepath_or_stream)

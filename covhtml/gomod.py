"""resolve the go module path that prefixes profile identifiers"""

import os
import re
from pathlib import Path
from typing import Optional, Union

GOMOD_FILENAME = "go.mod"

_COMMENT = re.compile(r"//.*$")
_MODULE_LINE = re.compile(r"^module\s+(?P<path>\S+)$")
_MODULE_BLOCK_OPEN = re.compile(r"^module\s*\($")


class GoModError(Exception):
    """go.mod is missing or declares no module path"""

    pass


def _unquote(path: str) -> str:
    if len(path) >= 2 and path[0] == path[-1] and path[0] in "\"`":
        return path[1:-1]
    return path


def parse_module_path(text: str) -> str:
    """
    extract the module path from go.mod contents
    accepts `module a/b`, quoted paths and the `module ( a/b )` block form
    """
    in_block = False
    for raw in text.splitlines():
        line = _COMMENT.sub("", raw).strip()
        if not line:
            continue
        if in_block:
            if line == ")":
                break
            return _unquote(line)
        if _MODULE_BLOCK_OPEN.match(line):
            in_block = True
            continue
        match = _MODULE_LINE.match(line)
        if match:
            return _unquote(match.group("path"))
    raise GoModError("no module directive found in go.mod")


def read_module_path(directory: Union[str, Path]) -> str:
    """read the module path from the go.mod inside directory"""
    gomod = Path(directory) / GOMOD_FILENAME
    try:
        text = gomod.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise GoModError(f"cannot read {gomod}: {e}") from e
    return parse_module_path(text)


def find_gomod_dir(directory: Union[str, Path]) -> Optional[Path]:
    """directory itself if it holds a go.mod, parents are not searched"""
    directory = Path(directory).resolve()
    if (directory / GOMOD_FILENAME).is_file():
        return directory
    return None


def resolve_source_path(display_file: str, source_root: Union[str, Path]) -> Path:
    """on-disk location of a module's source given its display path"""
    if os.path.isabs(display_file):
        return Path(display_file)
    return Path(source_root) / display_file

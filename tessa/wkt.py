"""
Reader for the WKT subset accepted as input.

Accepted forms (keywords are case-insensitive, whitespace is free):

    POLYGON((x y, ...), (x y, ...), ...)
    GEOMETRYCOLLECTION(POLYGON(...), MULTILINESTRING((x y, ...), ...))

The first ring of the polygon is the outer boundary, further rings are
holes. Line strings of the optional MULTILINESTRING become open road chains.
Rings are kept exactly as written: they are not closed implicitly, so a
closed ring repeats its first point at the end.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Union

from .utils import XY, Loop

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_KEYWORD = re.compile(r"[A-Za-z]+")


@dataclass
class TessaInput:
    polygon: List[Loop] = field(default_factory=list)
    linestrings: List[Loop] = field(default_factory=list)


class WktParseError(ValueError):
    """Malformed input geometry, with the position where parsing stopped."""

    def __init__(self, line: int, column: int, expected: str, source_line: str):
        self.line = line
        self.column = column
        self.expected = expected
        self.source_line = source_line
        super().__init__(f"Parse error at {line}:{column}, expected {expected}")

    def describe(self) -> List[str]:
        """Message, offending line and a caret under the failing column."""
        indicator = "-" * (self.column - 1) + "^"
        return [str(self), self.source_line, indicator]


class _Reader:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def skip_ws(self) -> None:
        n = len(self.text)
        while self.pos < n and self.text[self.pos].isspace():
            self.pos += 1

    def fail(self, expected: str) -> WktParseError:
        before = self.text[: self.pos]
        line = before.count("\n") + 1
        line_start = before.rfind("\n") + 1
        line_end = self.text.find("\n", self.pos)
        if line_end < 0:
            line_end = len(self.text)
        column = self.pos - line_start + 1
        return WktParseError(line, column, expected, self.text[line_start:line_end].rstrip("\r"))

    def peek_keyword(self) -> str:
        self.skip_ws()
        m = _KEYWORD.match(self.text, self.pos)
        return m.group(0).upper() if m else ""

    def keyword(self, word: str) -> None:
        if self.peek_keyword() != word:
            raise self.fail(f"'{word}'")
        self.pos += len(word)

    def accept(self, char: str) -> bool:
        self.skip_ws()
        if self.text.startswith(char, self.pos):
            self.pos += 1
            return True
        return False

    def expect(self, char: str) -> None:
        if not self.accept(char):
            raise self.fail(f"'{char}'")

    def number(self) -> float:
        self.skip_ws()
        m = _NUMBER.match(self.text, self.pos)
        if not m:
            raise self.fail("number")
        self.pos = m.end()
        return float(m.group(0))

    # --- grammar rules ---

    def point(self) -> XY:
        x = self.number()
        y = self.number()
        return (x, y)

    def point_list(self) -> Loop:
        self.expect("(")
        points = [self.point()]
        while self.accept(","):
            points.append(self.point())
        self.expect(")")
        return points

    def point_lists(self) -> List[Loop]:
        self.expect("(")
        lists = [self.point_list()]
        while self.accept(","):
            lists.append(self.point_list())
        self.expect(")")
        return lists

    def polygon(self) -> List[Loop]:
        self.keyword("POLYGON")
        return self.point_lists()

    def multilinestring(self) -> List[Loop]:
        self.keyword("MULTILINESTRING")
        return self.point_lists()

    def geometrycollection(self) -> TessaInput:
        self.keyword("GEOMETRYCOLLECTION")
        self.expect("(")
        result = TessaInput(polygon=self.polygon())
        if self.accept(","):
            result.linestrings = self.multilinestring()
        self.expect(")")
        return result

    def tessa_input(self) -> TessaInput:
        word = self.peek_keyword()
        if word == "GEOMETRYCOLLECTION":
            return self.geometrycollection()
        if word == "POLYGON":
            return TessaInput(polygon=self.polygon())
        raise self.fail("'GEOMETRYCOLLECTION' or 'POLYGON'")


def parse_wkt(text: str) -> TessaInput:
    """Parse a WKT polygon or geometry collection; raises WktParseError."""
    reader = _Reader(text)
    result = reader.tessa_input()
    reader.skip_ws()
    if reader.pos < len(text):
        logger.info(f"Ignoring trailing input after position {reader.pos}")
    return result


def read_wkt(source: Union[str, Path, IO[str], None] = None) -> TessaInput:
    """Read all of `source` (a path, an open text stream, or stdin) and parse it."""
    if source is None:
        text = sys.stdin.read()
    elif isinstance(source, (str, Path)):
        with open(source, "r") as f:
            text = f.read()
    else:
        text = source.read()
    return parse_wkt(text)

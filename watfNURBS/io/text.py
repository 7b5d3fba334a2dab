"""
Whitespace-separated token reader for the NURBS mesh text format.

Everything after a '#' on a line is a comment. Sections are introduced by a
keyword token ("knotvectors", "dimension", "weights", ...) followed by
counts and values.
"""

from typing import List, Optional, Iterable

import numpy as np

from ..errors import NURBSTopologyError

MESH_HEADER = "MFEM NURBS mesh v1.0"


class TokenStream:
    """
    Sequential reader over the tokens of a text document.

    Attributes:
        tokens: All tokens of the document, comments removed
        position: Index of the next token to be returned
    """

    def __init__(self, text: str):
        lines = text.splitlines()
        if lines and lines[0].strip().startswith("MFEM NURBS mesh"):
            lines = lines[1:]
        self.tokens: List[str] = []
        for line in lines:
            self.tokens.extend(line.split("#", 1)[0].split())
        self.position = 0

    @classmethod
    def from_file(cls, filename: str) -> 'TokenStream':
        with open(filename, "r") as f:
            return cls(f.read())

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> 'TokenStream':
        return cls("\n".join(lines))

    def at_end(self) -> bool:
        return self.position >= len(self.tokens)

    def peek(self) -> Optional[str]:
        """Next token without consuming it, None at the end."""
        if self.at_end():
            return None
        return self.tokens[self.position]

    def next(self) -> str:
        if self.at_end():
            raise NURBSTopologyError("Unexpected end of input")
        token = self.tokens[self.position]
        self.position += 1
        return token

    def next_int(self) -> int:
        token = self.next()
        try:
            return int(token)
        except ValueError:
            raise NURBSTopologyError(f"Expected an integer, got '{token}'") from None

    def next_float(self) -> float:
        token = self.next()
        try:
            return float(token)
        except ValueError:
            raise NURBSTopologyError(f"Expected a number, got '{token}'") from None

    def next_ints(self, n: int) -> np.ndarray:
        return np.array([self.next_int() for _ in range(n)], dtype=int)

    def next_floats(self, n: int) -> np.ndarray:
        return np.array([self.next_float() for _ in range(n)], dtype=np.float64)

    def expect(self, keyword: str) -> None:
        """Consume the next token and check that it equals keyword."""
        token = self.next()
        if token != keyword:
            raise NURBSTopologyError(f"Expected section '{keyword}', got '{token}'")

    def accept(self, keyword: str) -> bool:
        """Consume the next token if it equals keyword."""
        if self.peek() == keyword:
            self.position += 1
            return True
        return False


def _format_number(v: float) -> str:
    v = float(v)
    if v.is_integer() and abs(v) < 1e15:
        return str(int(v))
    return repr(v)


def format_values(values: Iterable[float]) -> str:
    """Format numbers on one line, integers without a trailing '.0'."""
    return " ".join(_format_number(v) for v in values)

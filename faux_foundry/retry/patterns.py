"""Deterministic strings from regular expressions.

:func:`expand_pattern` turns a field pattern such as ``^PAT[0-9]{8}$``
into a matching string chosen by an integer index. Every variable
position (character class, alternation) acts as one digit of a
mixed-radix counter whose rightmost position varies fastest, so
consecutive indexes give distinct strings until the pattern's value
space is exhausted::

    expand_pattern("^PAT[0-9]{8}$", 0)   -> "PAT00000000"
    expand_pattern("^PAT[0-9]{8}$", 42)  -> "PAT00000042"

Supported: literals, escapes, ``.``, ``\\d \\w \\s`` (and their
negations), bracket classes with ranges and negation, groups (plain and
``(?:``), alternation, and the quantifiers ``? * + {n} {n,} {n,m}``.
Bounded quantifiers repeat their maximum, ``?`` repeats once, and
unbounded ones repeat their minimum plus ``UNBOUNDED_EXTRA``.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from functools import lru_cache

UNBOUNDED_EXTRA = 3

_DIGITS = string.digits
_WORD = string.ascii_letters + string.digits + "_"
_LETTERS = string.ascii_letters
_ALNUM = string.ascii_letters + string.digits
_ANY = string.ascii_lowercase

_CLASS_ESCAPES = {
    "d": _DIGITS,
    "w": _WORD,
    "s": " ",
    "D": _LETTERS,
    "W": "-",
    "S": _ALNUM,
}
_ZERO_WIDTH_ESCAPES = frozenset("bBAZ")


class PatternError(ValueError):
    """Raised when a pattern uses syntax the expander does not support."""


@dataclass(frozen=True)
class _Literal:
    text: str


@dataclass(frozen=True)
class _CharSet:
    chars: str


@dataclass(frozen=True)
class _Repeat:
    node: _Node
    count: int


@dataclass(frozen=True)
class _Group:
    alternatives: tuple[tuple[_Node, ...], ...]


_Node = _Literal | _CharSet | _Repeat | _Group


class _Counter:
    def __init__(self, value: int) -> None:
        self.value = value

    def take(self, radix: int) -> int:
        digit = self.value % radix
        self.value //= radix
        return digit


class _Parser:
    def __init__(self, pattern: str) -> None:
        self.p = pattern
        self.i = 0

    def parse(self) -> _Group:
        group = self._alternatives()
        if self.i < len(self.p):
            raise PatternError(f"unbalanced ')' at {self.i}")
        return group

    def _peek(self) -> str:
        return self.p[self.i] if self.i < len(self.p) else ""

    def _alternatives(self) -> _Group:
        alts = [self._sequence()]
        while self._peek() == "|":
            self.i += 1
            alts.append(self._sequence())
        return _Group(tuple(alts))

    def _sequence(self) -> tuple[_Node, ...]:
        nodes: list[_Node] = []
        while self.i < len(self.p) and self._peek() not in ("|", ")"):
            atom = self._atom()
            if atom is not None:
                nodes.append(self._quantified(atom))
        return tuple(nodes)

    def _atom(self) -> _Node | None:
        ch = self.p[self.i]
        self.i += 1
        if ch in "^$":
            return None
        if ch == ".":
            return _CharSet(_ANY)
        if ch == "\\":
            return self._escape()
        if ch == "[":
            return self._charset()
        if ch == "(":
            if self.p.startswith("?:", self.i):
                self.i += 2
            elif self._peek() == "?":
                raise PatternError(f"unsupported group syntax at {self.i - 1}")
            group = self._alternatives()
            if self._peek() != ")":
                raise PatternError("missing ')'")
            self.i += 1
            return group
        if ch in "*+?":
            raise PatternError(f"nothing to repeat at {self.i - 1}")
        return _Literal(ch)

    def _escape(self) -> _Node | None:
        if self.i >= len(self.p):
            raise PatternError("trailing backslash")
        ch = self.p[self.i]
        self.i += 1
        if ch in _CLASS_ESCAPES:
            return _CharSet(_CLASS_ESCAPES[ch])
        if ch in _ZERO_WIDTH_ESCAPES:
            return None
        if ch == "n":
            return _Literal("\n")
        if ch == "t":
            return _Literal("\t")
        return _Literal(ch)

    def _charset(self) -> _CharSet:
        negate = self._peek() == "^"
        if negate:
            self.i += 1
        members: list[str] = []
        first = True
        while True:
            if self.i >= len(self.p):
                raise PatternError("missing ']'")
            ch = self.p[self.i]
            self.i += 1
            if ch == "]" and not first:
                break
            first = False
            if ch == "\\":
                if self.i >= len(self.p):
                    raise PatternError("trailing backslash")
                esc = self.p[self.i]
                self.i += 1
                if esc in _CLASS_ESCAPES:
                    members.extend(_CLASS_ESCAPES[esc])
                    continue
                ch = esc
            is_range = (
                self._peek() == "-"
                and self.i + 1 < len(self.p)
                and self.p[self.i + 1] != "]"
            )
            if is_range:
                end = self.p[self.i + 1]
                self.i += 2
                if ord(end) < ord(ch):
                    raise PatternError(f"bad range {ch}-{end}")
                members.extend(chr(c) for c in range(ord(ch), ord(end) + 1))
            else:
                members.append(ch)

        chars = "".join(dict.fromkeys(members))
        if negate:
            chars = "".join(c for c in _ALNUM if c not in chars)
        if not chars:
            raise PatternError("empty character class")
        return _CharSet(chars)

    def _quantified(self, atom: _Node) -> _Node:
        ch = self._peek()
        if ch == "?":
            self.i += 1
            count = 1
        elif ch == "*":
            self.i += 1
            count = UNBOUNDED_EXTRA
        elif ch == "+":
            self.i += 1
            count = 1 + UNBOUNDED_EXTRA
        elif ch == "{":
            bounds = self._braces()
            if bounds is None:
                return atom
            low, high = bounds
            count = high if high is not None else low + UNBOUNDED_EXTRA
        else:
            return atom
        if self._peek() in ("?", "+"):
            # lazy / possessive modifiers do not change what matches
            self.i += 1
        return _Repeat(atom, count)

    def _braces(self) -> tuple[int, int | None] | None:
        close = self.p.find("}", self.i)
        if close == -1:
            return None
        body = self.p[self.i + 1 : close]
        low_text, sep, high_text = body.partition(",")
        if not low_text.isdigit() or (high_text and not high_text.isdigit()):
            return None
        self.i = close + 1
        low = int(low_text)
        if not sep:
            return low, low
        return low, int(high_text) if high_text else None


@lru_cache(maxsize=256)
def _compile(pattern: str) -> _Group:
    return _Parser(pattern).parse()


def expand_pattern(pattern: str, index: int) -> str:
    """Return the ``index``-th string matching ``pattern``.

    Raises:
        PatternError: The pattern uses unsupported syntax.
    """
    counter = _Counter(max(index, 0))
    out: list[str] = []
    _emit(_compile(pattern), counter, out)
    return "".join(out)[::-1]


def _emit(node: _Node, counter: _Counter, out: list[str]) -> None:
    # Walk right to left so the last position varies fastest; ``out``
    # holds the result reversed.
    match node:
        case _Literal(text):
            out.append(text[::-1])
        case _CharSet(chars):
            out.append(chars[counter.take(len(chars))])
        case _Repeat(inner, count):
            for _ in range(count):
                _emit(inner, counter, out)
        case _Group(alternatives):
            choice = counter.take(len(alternatives)) if len(alternatives) > 1 else 0
            for child in reversed(alternatives[choice]):
                _emit(child, counter, out)

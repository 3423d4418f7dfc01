"""Terminal output helpers for the faux-foundry CLI.

Provides simple, dependency-free formatting with ANSI colors.
Everything goes to stderr so stdout stays free for JSONL records.
Color is disabled when stderr is not a TTY or when the ``NO_COLOR``
environment variable is set.
"""

from __future__ import annotations

import os
import sys

from faux_foundry.core.types import GenerationProgress, GenerationResult


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(sys.stderr, "isatty"):
        return False
    return sys.stderr.isatty()


_COLOR = _supports_color()


def _ansi(code: str, text: str) -> str:
    if not _COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def _emit(line: str = "") -> None:
    print(line, file=sys.stderr)


def bold(text: str) -> str:
    return _ansi("1", text)


def dim(text: str) -> str:
    return _ansi("2", text)


def green(text: str) -> str:
    return _ansi("32", text)


def yellow(text: str) -> str:
    return _ansi("33", text)


def red(text: str) -> str:
    return _ansi("31", text)


# ── Structured output ───────────────────────────────────────────────


def header(title: str) -> None:
    """Print a section header."""
    _emit(f"\n{bold(title)}")


def success(msg: str) -> None:
    _emit(f"  {green('✓')} {msg}")


def warn(msg: str) -> None:
    _emit(f"  {yellow('!')} {msg}")


def error(msg: str) -> None:
    _emit(f"  {red('✗')} {msg}")


def info(msg: str) -> None:
    _emit(f"  {msg}")


def kv(key: str, value: object, indent: int = 2) -> None:
    """Print a key-value pair."""
    pad = " " * indent
    _emit(f"{pad}{dim(str(key) + ':')}  {value}")


def banner() -> None:
    """Print the opening banner."""
    _emit(bold("faux-foundry") + dim(" — synthetic JSONL datasets from an LLM"))


# ── Generation progress ─────────────────────────────────────────────


def _duration(seconds: float | None) -> str:
    if seconds is None:
        return "?"
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes:02d}m"
    if minutes:
        return f"{minutes}m{secs:02d}s"
    return f"{secs}s"


def progress(p: GenerationProgress) -> None:
    """Print one progress line for the batch just completed."""
    _emit(
        f"  {dim(f'[{p.batches:>4}]')} "
        f"{p.generated}/{p.target} ({p.percent:5.1f}%)  "
        f"{p.rate:7.1f} rec/s  "
        f"{dim('dups')} {p.duplicates}  "
        f"{dim('eta')} {_duration(p.eta)}"
    )


def summary(result: GenerationResult) -> None:
    """Print final statistics for a run."""
    if result.succeeded:
        success(f"Generated {result.written} records")
    else:
        error(f"Generation {result.outcome}: {result.error or 'unknown error'}")
        if result.written:
            warn(
                f"Output is incomplete: kept {result.written} records, "
                f"{result.shortfall} short of {result.target}"
            )
    kv("Written", f"{result.written}/{result.target}")
    kv("Duplicates dropped", result.duplicates)
    if result.malformed:
        kv("Malformed dropped", result.malformed)
    kv("Batches", result.batches)
    kv("Elapsed", _duration(result.elapsed))
    if result.elapsed > 0:
        kv("Rate", f"{result.written / result.elapsed:.1f} rec/s")

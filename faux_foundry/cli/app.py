from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Callable, Coroutine
from typing import Any

from pydantic import ValidationError

from faux_foundry.cli import output as out
from faux_foundry.cli.config import (
    Config,
    config_exists,
    config_path_display,
    load_config,
)
from faux_foundry.config import build_source, source_registry
from faux_foundry.core.exceptions import SinkError, SpecError, UnsupportedProviderError
from faux_foundry.core.types import ExitCode
from faux_foundry.pipeline.orchestrator import GenerationPipeline
from faux_foundry.retry.config import RetryConfig
from faux_foundry.sink.jsonl import open_sink
from faux_foundry.spec.duration import parse_duration
from faux_foundry.spec.loader import load_spec
from faux_foundry.spec.models import Specification

DESCRIPTION = """\
faux-foundry — synthetic JSONL datasets from an LLM

Describe the records you want in a YAML specification; faux-foundry
asks a language model for them in batches, drops duplicates and
streams exactly the requested number of records to a JSONL file.

Quick start: faux-foundry generate --spec customers.yaml --dry-run"""


# ── Infrastructure helpers ──────────────────────────────────────────


def _load_spec_or_report(path: str, count: int | None = None) -> Specification | None:
    try:
        spec = load_spec(path)
        if count is not None:
            spec = spec.with_count(count)
    except SpecError as exc:
        out.error(exc.message)
        return None
    except ValidationError as exc:
        out.error(f"Invalid specification: {exc.errors()[0]['msg']}")
        return None
    return spec


def _retry_config(
    cfg: Config, spec: Specification, args: argparse.Namespace
) -> RetryConfig:
    """Merge config file, specification and command-line retry settings."""
    overrides: dict[str, Any] = {"base_timeout": spec.model.timeout_seconds}
    if args.max_retries is not None:
        overrides["max_attempts"] = args.max_retries
    if args.min_batch_size is not None:
        overrides["min_batch_size"] = args.min_batch_size
    return cfg.retry_config(**overrides)


def _install_stop_handlers(pipeline: GenerationPipeline) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, pipeline.request_stop)
            installed.append(sig)
    return installed


# ── generate ────────────────────────────────────────────────────────


async def cmd_generate(args: argparse.Namespace) -> ExitCode:
    """Generate a dataset from a specification file."""
    cfg = load_config()

    spec = _load_spec_or_report(args.spec, args.count)
    if spec is None:
        return ExitCode.VALIDATION

    try:
        retry_config = _retry_config(cfg, spec, args)
        timeout = parse_duration(args.timeout) if args.timeout else cfg.timeout
    except SpecError as exc:
        out.error(exc.message)
        return ExitCode.VALIDATION
    except ValidationError as exc:
        out.error(f"Invalid retry settings: {exc.errors()[0]['msg']}")
        return ExitCode.VALIDATION

    buffer_size = args.buffer_size or cfg.buffer_size
    if buffer_size < 1:
        out.error("--buffer-size must be positive")
        return ExitCode.VALIDATION

    provider = "synthetic" if args.dry_run else spec.model.provider
    try:
        source = build_source(provider, api_key=cfg.api_key, seed=args.seed)
    except UnsupportedProviderError as exc:
        out.error(str(exc))
        return ExitCode.VALIDATION

    try:
        sink = open_sink(args.output, buffer_size=buffer_size)
    except SinkError as exc:
        out.error(exc.message)
        await source.aclose()
        return ExitCode.FAILURE

    if not args.quiet:
        out.banner()
        out.kv("Specification", args.spec)
        out.kv("Model", "synthetic (dry run)" if args.dry_run else spec.model.name)
        out.kv("Target", spec.target)
        out.kv("Output", sink.path)
        print(file=sys.stderr)

    pipeline = GenerationPipeline(
        spec,
        source,
        sink,
        retry_config=retry_config,
        timeout=timeout,
        max_stalled_batches=cfg.max_stalled_batches,
        on_progress=None if args.quiet else out.progress,
    )

    installed = _install_stop_handlers(pipeline)
    try:
        result = await pipeline.run()
    finally:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        await source.aclose()

    if not args.quiet:
        print(file=sys.stderr)
        out.summary(result)
    return result.exit_code


# ── validate ────────────────────────────────────────────────────────


async def cmd_validate(args: argparse.Namespace) -> ExitCode:
    """Check a specification file without generating anything."""
    spec = _load_spec_or_report(args.file)
    if spec is None:
        return ExitCode.VALIDATION

    out.success(f"{args.file} is valid")
    out.kv("Model", f"{spec.model.provider}/{spec.model.name}")
    out.kv("Batch size", spec.batch_size)
    out.kv("Target", spec.target)
    out.kv("Domain", spec.dataset.domain)
    out.header("Fields")
    for field in spec.dataset.fields:
        marker = out.bold("*") if field.required else " "
        out.info(f"{marker} {field.name} {out.dim(field.type.value)}")
    return ExitCode.SUCCESS


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> ExitCode:
    """Display current configuration."""
    cfg = load_config()

    source = "" if config_exists() else " — not found, using defaults"
    out.header(f"Configuration ({config_path_display()}{source})")
    print(file=sys.stderr)

    if cfg.api_key:
        masked = cfg.api_key[:7] + "..." + cfg.api_key[-4:]
        out.kv("API key", masked)
    else:
        out.kv("API key", out.dim("not set"))

    out.kv("Max attempts", cfg.max_attempts)
    out.kv("Base timeout", f"{cfg.base_timeout:g}s")
    out.kv("Max timeout", f"{cfg.max_timeout:g}s")
    out.kv("Backoff multiplier", cfg.backoff_multiplier)
    out.kv("Shrink factor", cfg.shrink_factor)
    out.kv("Min batch size", cfg.min_batch_size)
    out.kv("Retry delay", f"{cfg.retry_delay:g}s")
    out.kv("Buffer size", cfg.buffer_size)
    out.kv(
        "Run timeout",
        f"{cfg.timeout:g}s" if cfg.timeout is not None else out.dim("none"),
    )
    out.kv("Max stalled batches", cfg.max_stalled_batches)
    out.kv("Providers", ", ".join(source_registry.names()))
    print(file=sys.stderr)
    return ExitCode.SUCCESS


async def cmd_config_path(args: argparse.Namespace) -> ExitCode:
    print(config_path_display())
    return ExitCode.SUCCESS


# ── Parser ──────────────────────────────────────────────────────────


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="faux-foundry",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Generate:\n"
            "  faux-foundry generate --spec spec.yaml -o out.jsonl  "
            "Generate to a file\n"
            "  faux-foundry generate --spec spec.yaml --dry-run     "
            "Offline run with synthetic records\n"
            "\n"
            "Check:\n"
            "  faux-foundry validate spec.yaml                      "
            "Validate a specification\n"
            "\n"
            "Configuration:\n"
            "  faux-foundry config show                             "
            "Show current settings\n"
            "  faux-foundry config path                             "
            "Print config file location\n"
            "\n"
            "Exit codes: 0 success, 1 write failure, 2 invalid input,\n"
            "3 backend exhausted, 4 deadline exceeded, 130 interrupted."
        ),
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed logs (batches, retry decisions)",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report errors",
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    p_gen = sub.add_parser(
        "generate",
        help="Generate a JSONL dataset from a specification",
    )
    p_gen.add_argument(
        "--spec", "-s", required=True, metavar="FILE", help="YAML specification"
    )
    p_gen.add_argument(
        "--output",
        "-o",
        metavar="PATH",
        help="Output file (.jsonl or .jsonl.gz); stdout when omitted",
    )
    p_gen.add_argument(
        "--count",
        "-n",
        type=_positive_int,
        help="Override the record count from the specification",
    )
    p_gen.add_argument(
        "--timeout",
        metavar="DURATION",
        help="Overall deadline, e.g. 90s, 30m, 2h, 1h30m",
    )
    p_gen.add_argument(
        "--seed",
        type=int,
        help="Request seed sent to the model; offsets records under --dry-run",
    )
    p_gen.add_argument(
        "--dry-run",
        action="store_true",
        help="Use the offline synthetic source instead of the model",
    )
    p_gen.add_argument(
        "--max-retries",
        type=_positive_int,
        metavar="N",
        help="Maximum attempts per batch",
    )
    p_gen.add_argument(
        "--min-batch-size",
        type=_positive_int,
        metavar="N",
        help="Smallest batch size the retry engine may shrink to",
    )
    p_gen.add_argument(
        "--buffer-size",
        type=_positive_int,
        metavar="N",
        help="Records buffered before each write to the output",
    )

    p_val = sub.add_parser("validate", help="Validate a specification file")
    p_val.add_argument("file", metavar="FILE", help="YAML specification")

    p_cfg = sub.add_parser("config", help="View settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command", title="config commands")
    cfg_sub.add_parser("show", help="Show current settings")
    cfg_sub.add_parser("path", help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, ExitCode]]

_COMMAND_MAP: dict[str, _CommandHandler] = {
    "generate": cmd_generate,
    "validate": cmd_validate,
}

_CONFIG_MAP: dict[str, _CommandHandler] = {
    "show": cmd_config_show,
    "path": cmd_config_path,
}


def run(argv: list[str] | None = None) -> int:
    """Parse ``argv``, dispatch the command and return its exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    elif args.quiet:
        logging.basicConfig(level=logging.ERROR)
    logging.getLogger("LiteLLM").setLevel(logging.CRITICAL)
    logging.getLogger("litellm").setLevel(logging.CRITICAL)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return ExitCode.SUCCESS

    if args.command == "config":
        if not args.config_command:
            parser.parse_args(["config", "--help"])
            return ExitCode.SUCCESS
        handler = _CONFIG_MAP.get(args.config_command)
    else:
        handler = _COMMAND_MAP.get(args.command)

    if handler is None:
        parser.print_help()
        return ExitCode.VALIDATION

    try:
        return int(asyncio.run(handler(args)))
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return ExitCode.INTERRUPTED


def main() -> None:
    sys.exit(run())

# src/main.py — v1
"""CLI entry point — run, adaptors, health, prompt, version commands.

Usage:
    labgen run <stage> --project P --target KEY [--var k=v ...] [--count N] [--sse]
    labgen adaptors [--health]
    labgen health <adaptor> [--model M]
    labgen prompt <stage> <capability> [--project P] [--var k=v ...]
    labgen version
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from labgen.config.settings import ConfigurationError, Settings, load_settings
from labgen.core.errors import GenerationError
from labgen.core.models import CAPABILITIES
from labgen.logging.logger import setup_logging
from labgen.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format="text" if args.verbose else settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except GenerationError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="labgen",
        description=f"labgen v{__version__} — staged AI content generation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging (text format)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- run ---
    p_run = subparsers.add_parser("run", help="Run one item-producing stage")
    p_run.add_argument("stage", help="Stage name, e.g. stage_2_themes")
    p_run.add_argument("--project", default=None, help="Project id")
    p_run.add_argument(
        "--target", required=True,
        help="Result document key, e.g. gamelab_projects/<project_id>",
    )
    p_run.add_argument(
        "--var", dest="variables", action="append", type=_key_value, default=[],
        metavar="KEY=VALUE",
        help="Context variable (repeatable; JSON values are decoded)",
    )
    p_run.add_argument(
        "--count", type=int, default=None,
        help="Number of items (default: PIPELINE_ITEM_COUNT)",
    )
    p_run.add_argument(
        "--sse", action="store_true",
        help="Print raw Server-Sent Events frames instead of progress lines",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- adaptors ---
    p_adaptors = subparsers.add_parser("adaptors", help="List registered adaptors")
    p_adaptors.add_argument(
        "--health", action="store_true",
        help="Probe every configured adaptor",
    )
    p_adaptors.set_defaults(func=_cmd_adaptors)

    # --- health ---
    p_health = subparsers.add_parser("health", help="Probe one adaptor")
    p_health.add_argument("adaptor", help="Adaptor id, e.g. gemini")
    p_health.add_argument("--model", default=None, help="Model id (default: adaptor default)")
    p_health.set_defaults(func=_cmd_health)

    # --- prompt ---
    p_prompt = subparsers.add_parser("prompt", help="Preview a resolved prompt")
    p_prompt.add_argument("stage", help="Stage name")
    p_prompt.add_argument("capability", choices=CAPABILITIES, help="Capability")
    p_prompt.add_argument("--project", default=None, help="Project id")
    p_prompt.add_argument(
        "--var", dest="variables", action="append", type=_key_value, default=[],
        metavar="KEY=VALUE",
        help="Template variable (repeatable)",
    )
    p_prompt.set_defaults(func=_cmd_prompt)

    # --- version ---
    p_version = subparsers.add_parser("version", help="Print the version")
    p_version.set_defaults(func=_cmd_version)

    return parser


def _key_value(raw: str) -> tuple[str, Any]:
    """Parse ``key=value``; the value is JSON-decoded when it parses."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {raw!r}")
    try:
        return key.strip(), json.loads(value)
    except json.JSONDecodeError:
        return key.strip(), value


async def _cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    """Run a stage and print its events."""
    from labgen.api.facade import build_orchestrator, stream_batch_sse
    from labgen.pipeline.models import BatchRequest

    request = BatchRequest(
        stage=args.stage,
        project_id=args.project,
        target_key=args.target,
        context=dict(args.variables),
        item_count=args.count,
    )
    orchestrator = build_orchestrator(settings)

    if args.sse:
        async for frame in stream_batch_sse(request, orchestrator):
            sys.stdout.write(frame)
            sys.stdout.flush()
        return 0

    failed = False
    async for event in orchestrator.stream(request):
        print(_format_event(event))
        if event.type == "complete":
            failed = event.error_count > 0 and event.success_count == 0
    return 1 if failed else 0


async def _cmd_adaptors(args: argparse.Namespace, settings: Settings) -> int:
    """List adaptors, their capabilities and (optionally) health."""
    from labgen.adaptors.builtin import create_default_registry
    from labgen.adaptors.resolver import AdaptorResolver

    resolver = AdaptorResolver(create_default_registry(), settings)
    rows = await resolver.list_available(check_health=args.health)

    for row in rows:
        d = row.descriptor
        status = "configured" if row.configured else f"unconfigured ({row.error})"
        print(f"{d.adaptor_id:<10} {d.display_name:<20} {status}")
        print(f"  capabilities: {', '.join(d.capabilities)}")
        print(f"  default model: {d.default_model}")
        for info in d.models:
            flag = " (deprecated)" if info.is_deprecated else ""
            print(f"    - {info.id}{flag}")
        if row.health is not None:
            h = row.health
            detail = f"{h.latency_ms}ms" if h.status == "ok" else h.error
            print(f"  health: {h.status} {detail}")
    return 0


async def _cmd_health(args: argparse.Namespace, settings: Settings) -> int:
    """Probe one adaptor; exit code 0 only when it answers."""
    from labgen.adaptors.builtin import create_default_registry
    from labgen.adaptors.resolver import global_credentials

    registry = create_default_registry()
    adaptor = registry.instantiate(
        args.adaptor,
        args.model,
        global_credentials(args.adaptor, settings),
    )
    status = await adaptor.health_check()
    print(status.model_dump_json(indent=2))
    return 0 if status.status == "ok" else 1


async def _cmd_prompt(args: argparse.Namespace, settings: Settings) -> int:
    """Resolve a stored template with the given variables and print it."""
    from labgen.prompts.resolver import resolve_prompt
    from labgen.prompts.template_store import JsonPromptStore

    store = JsonPromptStore(settings.prompt_store_root)
    template = await store.get_by_capability(args.stage, args.capability, args.project)
    resolved = resolve_prompt(template, dict(args.variables))

    print(f"# {template.id} (v{template.version}, {resolved.output_format})")
    if resolved.system_prompt:
        print("\n## System\n")
        print(resolved.system_prompt)
    if resolved.user_prompt:
        print("\n## User\n")
        print(resolved.user_prompt)
    return 0


async def _cmd_version(args: argparse.Namespace, settings: Settings) -> int:
    print(__version__)
    return 0


def _format_event(event: Any) -> str:
    """One human-readable line per pipeline event."""
    prefix = f"[{event.progress:>3}%]"
    if event.type == "start":
        return f"{prefix} start {event.stage} ({event.item_count} items)"
    if event.type == "item":
        return f"{prefix} item {event.index}: {event.item.get('title', event.item_id)}"
    if event.type == "asset":
        if event.error:
            return f"{prefix} asset {event.index} FAILED ({event.error_kind}): {event.error}"
        return f"{prefix} asset {event.index}: {event.url}"
    if event.type == "complete":
        return (
            f"{prefix} complete: {event.success_count}/{event.total} ok, "
            f"{event.error_count} failed"
        )
    if event.type == "error":
        return f"{prefix} error ({event.error_kind}): {event.message}"
    return f"{prefix} {event.message}"


if __name__ == "__main__":
    sys.exit(main())

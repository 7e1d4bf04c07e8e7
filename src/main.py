# src/main.py — v2
"""CLI entry point — settings, model, cache and connection commands.

Usage:
    jobpilot settings show
    jobpilot models list | download <url> | cleanup
    jobpilot cache stats | clear [--purpose P] | cleanup | evict (--max-mb N | --max-entries N)
    jobpilot test-connection
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable

from jobpilot.api.commands import CommandSurface
from jobpilot.config.settings import Settings, load_settings
from jobpilot.core.error_messages import to_user_message
from jobpilot.core.errors import JobPilotError
from jobpilot.logging.handlers import default_log_file
from jobpilot.logging.logger import setup_logging
from jobpilot.version import __version__

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[Settings], CommandSurface]


def main(
    argv: list[str] | None = None,
    surface_factory: SurfaceFactory = CommandSurface.from_settings,
) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except JobPilotError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)
    surface = surface_factory(settings)
    try:
        return asyncio.run(args.func(surface, args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except JobPilotError as exc:
        _print_error(exc)
        return 1
    finally:
        surface.close()


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="jobpilot",
        description=f"jobpilot v{__version__} — AI provider and response cache tools",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- settings ---
    p_settings = subparsers.add_parser("settings", help="AI settings")
    settings_sub = p_settings.add_subparsers(dest="settings_command", required=True)
    settings_sub.add_parser("show", help="Show current AI settings").set_defaults(
        func=_cmd_settings_show,
    )

    # --- models ---
    p_models = subparsers.add_parser("models", help="Local model files")
    models_sub = p_models.add_subparsers(dest="models_command", required=True)
    models_sub.add_parser("list", help="List model files").set_defaults(func=_cmd_models_list)
    p_download = models_sub.add_parser("download", help="Download a model file")
    p_download.add_argument("url", help="Direct link to a .gguf file")
    p_download.set_defaults(func=_cmd_models_download)
    models_sub.add_parser(
        "cleanup", help="Delete misnamed model files and clear an invalid model path",
    ).set_defaults(func=_cmd_models_cleanup)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="AI response cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command", required=True)
    cache_sub.add_parser("stats", help="Show cache statistics").set_defaults(
        func=_cmd_cache_stats,
    )
    p_clear = cache_sub.add_parser("clear", help="Remove cached entries")
    p_clear.add_argument("--purpose", default=None, help="Only this purpose")
    p_clear.set_defaults(func=_cmd_cache_clear)
    cache_sub.add_parser("cleanup", help="Remove expired entries").set_defaults(
        func=_cmd_cache_cleanup,
    )
    p_evict = cache_sub.add_parser("evict", help="Evict oldest entries down to a bound")
    bound = p_evict.add_mutually_exclusive_group(required=True)
    bound.add_argument("--max-mb", type=float, help="Maximum total size in MB")
    bound.add_argument("--max-entries", type=int, help="Maximum number of entries")
    p_evict.set_defaults(func=_cmd_cache_evict)

    # --- test-connection ---
    subparsers.add_parser(
        "test-connection", help="Check the configured AI provider",
    ).set_defaults(func=_cmd_test_connection)

    return parser


async def _cmd_settings_show(surface: CommandSurface, args: argparse.Namespace) -> int:
    s = await surface.get_ai_settings()
    print("AI settings:")
    print(f"  Mode:           {s.mode.value}")
    print(f"  Cloud provider: {s.cloud_provider.value if s.cloud_provider else '-'}")
    print(f"  API key:        {'set' if s.has_api_key else 'not set'}")
    print(f"  Model name:     {s.model_name or '-'}")
    print(f"  Local model:    {s.local_model_path or '-'}")
    print(f"  Version:        {s.version}")
    return 0


async def _cmd_models_list(surface: CommandSurface, args: argparse.Namespace) -> int:
    models = surface.model_store.find_model_files()
    if not models:
        print(f"No model files in {surface.model_store.model_dir}")
        return 0
    for model in models:
        flag = "" if model.valid else "  [invalid name]"
        print(f"  {model.name}  {model.size_bytes / (1024 * 1024):.1f} MB{flag}")
    return 0


async def _cmd_models_download(surface: CommandSurface, args: argparse.Namespace) -> int:
    path = await surface.download_model(args.url)
    print(f"Downloaded to {path}")
    return 0


async def _cmd_models_cleanup(surface: CommandSurface, args: argparse.Namespace) -> int:
    removed = await surface.cleanup_invalid_model_files()
    cleared = await surface.clear_invalid_model_path()
    print(f"Removed {len(removed)} invalid file(s)")
    for path in removed:
        print(f"  {path.name}")
    if cleared:
        print("Cleared invalid local model path from settings")
    return 0


async def _cmd_cache_stats(surface: CommandSurface, args: argparse.Namespace) -> int:
    stats = await surface.get_cache_stats()
    print("Cache statistics:")
    print(f"  Entries:  {stats.total_entries}")
    print(f"  Size:     {stats.total_size_bytes} bytes")
    print(f"  Expired:  {stats.expired_entries}")
    for purpose, count in sorted(stats.entries_by_purpose.items()):
        print(f"    {purpose}: {count}")
    if stats.oldest_created_at is not None:
        print(f"  Oldest:   {stats.oldest_created_at.isoformat()}")
        print(f"  Newest:   {stats.newest_created_at.isoformat()}")
    return 0


async def _cmd_cache_clear(surface: CommandSurface, args: argparse.Namespace) -> int:
    if args.purpose:
        removed = await surface.clear_cache_by_purpose(args.purpose)
    else:
        removed = await surface.clear_all_cache()
    print(f"Removed {removed} entr{'y' if removed == 1 else 'ies'}")
    return 0


async def _cmd_cache_cleanup(surface: CommandSurface, args: argparse.Namespace) -> int:
    removed = await surface.cleanup_expired_cache()
    print(f"Removed {removed} expired entr{'y' if removed == 1 else 'ies'}")
    return 0


async def _cmd_cache_evict(surface: CommandSurface, args: argparse.Namespace) -> int:
    if args.max_mb is not None:
        removed = await surface.evict_cache_by_size(args.max_mb)
    else:
        removed = await surface.evict_cache_by_count(args.max_entries)
    print(f"Evicted {removed} entr{'y' if removed == 1 else 'ies'}")
    return 0


async def _cmd_test_connection(surface: CommandSurface, args: argparse.Namespace) -> int:
    print(await surface.test_ai_connection())
    return 0


def _print_error(exc: JobPilotError) -> None:
    message = to_user_message(exc)
    print(f"Error: {message.message}", file=sys.stderr)
    for suggestion in message.suggestions:
        print(f"  - {suggestion}", file=sys.stderr)


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=default_log_file(settings),
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())

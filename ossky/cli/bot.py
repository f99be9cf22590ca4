# =============================================================================
# ossky/cli/bot.py - Bot Command Line
# =============================================================================
#
# Three subcommands:
#
#   run      Start the posting loop (default when no subcommand is given).
#            Credentials come from flags, environment variables, .env or
#            config/config.yaml, in that order of precedence.
#   sweep    Run one cache janitor cycle against the bucket and print the
#            counts. Useful from cron when the bot itself is not running.
#   preview  Encode a post from flags and print the record JSON without
#            touching any network service.
#
# Typical usage:
#   python -m ossky.cli run --github-token ghp_xxx
#   python -m ossky.cli sweep
#   python -m ossky.cli preview --title ossky --url https://github.com/o/ossky \
#       --author octocat --stargazers "42 ⭐️" --hashtags "#golang #bot"
# =============================================================================

"""Command-line entry point for the ossky bot."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from ossky.config.loader import load_settings
from ossky.config.settings import Settings, StargazersPlacement
from ossky.models.post import PostDraft
from ossky.services.post_encoder import PostEncoder
from ossky.utils.errors import ConfigurationError, ContractViolationError, OssBotError
from ossky.utils.logging import configure_logging, get_logger

_DEFAULT_CONFIG = "config/config.yaml"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _require(app_settings: Settings, *names: str) -> None:
    missing = [name for name in app_settings.missing_required() if not names or name in names]
    if missing:
        flags = ", ".join("--" + name.replace("_", "-") for name in missing)
        raise ConfigurationError(message=f"Missing required configuration: {flags}")


def _handle_run(app_settings: Settings) -> int:
    from ossky.main import run_bot

    _require(app_settings)
    asyncio.run(run_bot(app_settings))
    return 0


def _handle_sweep(app_settings: Settings) -> int:
    from ossky.main import run_sweep

    _require(app_settings, "aws_endpoint", "aws_access_key_id", "aws_secret_key")
    report = asyncio.run(run_sweep(app_settings))
    print(f"Swept bucket '{app_settings.cache_bucket}':")
    print(f"  Scanned: {report.scanned}")
    print(f"  Deleted: {report.deleted}")
    print(f"  Skipped: {report.skipped}")
    return 0


def _handle_preview(args: argparse.Namespace, app_settings: Settings) -> int:
    placement = args.stargazers_placement or app_settings.stargazers_placement
    encoder = PostEncoder(
        language=app_settings.post_language,
        stargazers_placement=StargazersPlacement(placement),
    )
    draft = PostDraft(
        title=args.title,
        url=args.url,
        description=args.description,
        author=args.author,
        stargazers=args.stargazers,
        hashtags=args.hashtags,
    )
    print(json.dumps(encoder.build_record(draft), indent=2, ensure_ascii=False))
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ossky",
        description="Announce open-source projects on Bluesky.",
    )
    parser.add_argument("--config", default=_DEFAULT_CONFIG, help="Path to the YAML config file")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")
    subparsers = parser.add_subparsers(dest="command", help="Bot commands")

    # -- run --
    run_parser = subparsers.add_parser("run", help="Start the posting loop")
    run_parser.add_argument("--bluesky-handle", dest="bluesky_handle", help="Bluesky handle")
    run_parser.add_argument("--bluesky-app-key", dest="bluesky_app_key", help="Bluesky app password")
    run_parser.add_argument("--github-token", dest="github_token", help="GitHub API token")
    _add_storage_arguments(run_parser)

    # -- sweep --
    sweep_parser = subparsers.add_parser("sweep", help="Delete expired cache objects once")
    _add_storage_arguments(sweep_parser)

    # -- preview --
    preview_parser = subparsers.add_parser("preview", help="Print the record for a post")
    preview_parser.add_argument("--title", required=True, help="Project name")
    preview_parser.add_argument("--url", required=True, help="Project URL")
    preview_parser.add_argument("--description", default="", help="Project description")
    preview_parser.add_argument("--author", default="", help="GitHub handle")
    preview_parser.add_argument("--stargazers", default="", help="Star count, e.g. '42 ⭐️'")
    preview_parser.add_argument("--hashtags", default="", help="Space separated hashtags")
    preview_parser.add_argument(
        "--stargazers-placement",
        dest="stargazers_placement",
        choices=[p.value for p in StargazersPlacement],
        help="Where the star count goes",
    )

    return parser


def _add_storage_arguments(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument("--aws-endpoint", dest="aws_endpoint", help="S3-compatible endpoint")
    subparser.add_argument("--aws-access-key-id", dest="aws_access_key_id", help="Access key id")
    subparser.add_argument("--aws-secret-key", dest="aws_secret_key", help="Secret key")
    subparser.add_argument("--bucket", dest="cache_bucket", help="Cache bucket name")


_OVERRIDE_FIELDS = (
    "bluesky_handle",
    "bluesky_app_key",
    "github_token",
    "aws_endpoint",
    "aws_access_key_id",
    "aws_secret_key",
    "cache_bucket",
    "log_level",
)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, load settings and dispatch to the subcommand.

    Returns the process exit code: 0 on success, 1 for configuration
    errors, 2 for anything else the bot raised.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    command = args.command or "run"

    overrides = {name: getattr(args, name, None) for name in _OVERRIDE_FIELDS}
    app_settings = load_settings(args.config, **overrides)

    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )
    logger = get_logger(__name__)

    try:
        if command == "preview":
            return _handle_preview(args, app_settings)
        if command == "sweep":
            return _handle_sweep(app_settings)
        return _handle_run(app_settings)
    except (ConfigurationError, ContractViolationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OssBotError as exc:
        logger.error("bot_failed", error=str(exc))
        return 2
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for the reddit_relay application."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import pprint
from pathlib import Path
from typing import List, Optional

from .config import AppConfig, parse_app_config, parse_env_config, resolve_targets
from .relay import RelaySettings
from .scheduler import run_all
from .webhook import redact_url

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
QUIET_LOGGERS = ("urllib3", "charset_normalizer")


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="reddit-relay",
        description=(
            "Poll feeds on a timer and post their newest entries "
            "to the paired Discord webhooks."
        ),
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        metavar="PATH",
        help="XML file listing the feed/webhook pairs and relay settings.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Relay one batch per pair, then exit instead of polling.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Seconds between polls of each feed. Replaces <interval-seconds>.",
    )

    diagnostics = parser.add_argument_group("diagnostics")
    diagnostics.add_argument(
        "--log-level",
        default=None,
        help="DEBUG, INFO, WARNING or ERROR. Replaces <logging><level>.",
    )
    diagnostics.add_argument(
        "--log-file",
        default=None,
        metavar="PATH",
        help="Also write the relay log to PATH. Replaces <logging><file>.",
    )

    return parser


def _attach(root_logger: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Send relay logs to stderr and optionally to ``log_file``.

    Lines carry the worker thread name so output from concurrent pairs can be
    told apart.
    """
    log_level = logging.getLevelName(level_name.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _attach(root_logger, logging.StreamHandler())
    if not log_file:
        logger.debug("Relay logging to console at %s", level_name.upper())
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    _attach(root_logger, logging.FileHandler(log_path, encoding="utf-8"))
    logger.debug("Relay logging at %s to console and %s", level_name.upper(), log_path)


def build_settings(app_config: AppConfig) -> RelaySettings:
    return RelaySettings(
        batch_size=app_config.batch_size,
        description_limit=app_config.description_limit,
        color=app_config.color,
        announce_empty=app_config.announce_empty,
        timeout=app_config.timeout_seconds,
        user_agent=app_config.user_agent,
        cursor_capacity=app_config.cursor_capacity,
        interval=app_config.interval_seconds,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.interval is not None and args.interval <= 0:
        parser.error("--interval must be positive.")

    try:
        app_config = parse_app_config(args.config)

        if app_config.env_file:
            env_vars = parse_env_config(app_config.env_file)
            os.environ.update(env_vars)

        # CLI overrides config
        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file

        configure_logging(log_level, log_file)

        targets = resolve_targets(app_config.pairs)
        if not targets:
            raise RuntimeError("No relay pair has both a feed and a webhook URL.")

        settings = build_settings(app_config)
        if args.interval is not None:
            settings.interval = args.interval
        active = {
            "settings": dataclasses.asdict(settings),
            "pairs": [
                {
                    "name": target.name,
                    "feed_url": target.feed_url,
                    "webhook_url": redact_url(target.webhook_url),
                }
                for target in targets
            ],
        }
        logger.info("Active Configuration:\n%s", pprint.pformat(active))

        run_all(targets, settings, once=args.once)
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting.")
        return 0
    except ValueError as exc:
        parser.error(str(exc))
    except (RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    return 0

"""Configuration loading for relay pairs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from xml.etree import ElementTree as ET

from .feeds import DEFAULT_USER_AGENT
from .formatting import (
    DEFAULT_DESCRIPTION_LIMIT,
    DEFAULT_EMBED_COLOR,
    MIN_DESCRIPTION_LIMIT,
)
from .models import DEFAULT_CURSOR_CAPACITY, DEFAULT_SITE_URL, WebhookTarget

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when the configuration cannot be used."""


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class PairConfig:
    """A feed/webhook pair as written in the config file."""

    name: str
    feed_url: Optional[str]
    webhook_url: Optional[str] = None
    webhook_env: Optional[str] = None
    site_url: str = DEFAULT_SITE_URL


@dataclass
class AppConfig:
    env_file: Optional[str] = None
    pairs: List[PairConfig] = field(default_factory=list)
    interval_seconds: Optional[float] = None
    batch_size: int = 5
    description_limit: int = DEFAULT_DESCRIPTION_LIMIT
    timeout_seconds: float = 10.0
    announce_empty: bool = False
    cursor_capacity: int = DEFAULT_CURSOR_CAPACITY
    user_agent: str = DEFAULT_USER_AGENT
    color: int = DEFAULT_EMBED_COLOR
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _text(node: Optional[ET.Element]) -> Optional[str]:
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def _number(root: ET.Element, tag: str, default, cast):
    raw = root.findtext(tag)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigError(f"<{tag}> must be a number, got {raw.strip()!r}")


def parse_env_config(path: str) -> Dict[str, str]:
    """Parse environment variables from XML."""
    env_vars: Dict[str, str] = {}
    if not path:
        return env_vars

    logger.info("Loading environment configuration from %s", path)
    try:
        tree = ET.parse(path)
    except (OSError, ET.ParseError) as exc:
        raise ConfigError(f"Failed to load environment config {path}: {exc}") from exc

    for var in tree.getroot().findall("variable"):
        name = var.attrib.get("name")
        value = var.text
        if name and value:
            env_vars[name] = value.strip()
    return env_vars


def parse_pairs(root: ET.Element) -> List[PairConfig]:
    pairs_node = root.find("pairs")
    if pairs_node is None:
        raise ConfigError("Config missing <pairs> section")

    pairs: List[PairConfig] = []
    for index, node in enumerate(pairs_node.findall("pair"), start=1):
        webhook_node = node.find("webhook")
        pair = PairConfig(
            name=node.attrib.get("name") or f"pair-{index}",
            feed_url=_text(node.find("feed")),
            webhook_url=_text(webhook_node),
            webhook_env=(
                webhook_node.attrib.get("env") if webhook_node is not None else None
            ),
            site_url=_text(node.find("site")) or DEFAULT_SITE_URL,
        )
        logger.debug("Registered pair '%s' for feed %s", pair.name, pair.feed_url)
        pairs.append(pair)

    logger.info("Loaded %d relay pairs from configuration", len(pairs))
    return pairs


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    try:
        root = ET.parse(config_path).getroot()
    except ET.ParseError as exc:
        raise ConfigError(f"Config file is not valid XML: {exc}") from exc

    env_text = _text(root.find("env"))
    env_file = _resolve_path(config_path, env_text) if env_text else None

    interval = _number(root, "interval-seconds", None, float)
    if interval is not None and interval <= 0:
        raise ConfigError("<interval-seconds> must be positive.")

    batch_size = _number(root, "batch-size", 5, int)
    if batch_size < 1:
        raise ConfigError("<batch-size> must be at least 1.")

    description_limit = _number(
        root, "description-limit", DEFAULT_DESCRIPTION_LIMIT, int
    )
    if not MIN_DESCRIPTION_LIMIT <= description_limit <= DEFAULT_DESCRIPTION_LIMIT:
        raise ConfigError(
            f"<description-limit> must be between {MIN_DESCRIPTION_LIMIT} "
            f"and {DEFAULT_DESCRIPTION_LIMIT}."
        )

    capacity = _number(root, "cursor-capacity", DEFAULT_CURSOR_CAPACITY, int)
    if capacity < batch_size:
        raise ConfigError(
            f"<cursor-capacity> ({capacity}) must be at least <batch-size> ({batch_size})."
        )

    # Logging
    log_node = root.find("logging")
    logging_config = LoggingConfig()
    if log_node is not None:
        logging_config.level = log_node.findtext("level", "INFO").strip()
        log_file = _text(log_node.find("file"))
        if log_file:
            logging_config.file = _resolve_path(config_path, log_file)

    return AppConfig(
        env_file=env_file,
        pairs=parse_pairs(root),
        interval_seconds=interval,
        batch_size=batch_size,
        description_limit=description_limit,
        timeout_seconds=_number(root, "timeout-seconds", 10.0, float),
        announce_empty=root.findtext("announce-empty", "false").strip().lower()
        == "true",
        cursor_capacity=capacity,
        user_agent=_text(root.find("user-agent")) or DEFAULT_USER_AGENT,
        color=_number(root, "color", DEFAULT_EMBED_COLOR, lambda v: int(v, 0)),
        logging=logging_config,
    )


def resolve_targets(
    pairs: List[PairConfig], environ: Optional[Mapping[str, str]] = None
) -> List[WebhookTarget]:
    """Turn pair configs into targets, dropping pairs missing an endpoint."""
    environ = os.environ if environ is None else environ
    targets: List[WebhookTarget] = []
    for pair in pairs:
        webhook_url = pair.webhook_url
        if not webhook_url and pair.webhook_env:
            webhook_url = environ.get(pair.webhook_env)

        if not pair.feed_url:
            logger.error("Pair '%s' has no feed URL; not scheduling it", pair.name)
            continue
        if not webhook_url:
            logger.error(
                "Pair '%s' has no webhook URL%s; not scheduling it",
                pair.name,
                f" (${pair.webhook_env} is unset)" if pair.webhook_env else "",
            )
            continue

        targets.append(
            WebhookTarget(
                name=pair.name,
                feed_url=pair.feed_url,
                webhook_url=webhook_url,
                site_url=pair.site_url,
            )
        )
    return targets

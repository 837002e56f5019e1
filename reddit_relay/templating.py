"""Jinja2 environment for reddit_relay message templates."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

_ENV: Environment | None = None


def get_environment() -> Environment:
    """Return a cached Jinja environment configured for package templates."""
    global _ENV
    if _ENV is None:
        template_dir = Path(__file__).resolve().parent / "templates"
        loader = FileSystemLoader(str(template_dir))
        _ENV = Environment(
            loader=loader,
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            keep_trailing_newline=False,
        )
    return _ENV


def render(template_name: str, **context) -> str:
    """Render a packaged template and strip surrounding whitespace."""
    template = get_environment().get_template(template_name)
    return template.render(**context).strip()

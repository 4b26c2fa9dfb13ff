"""Prompt templates for the AI flows.

Each prompt is a Markdown file under templates/, addressed by its path
without the suffix ("quiz/generate"). Placeholders use {name}; any other
brace text, such as JSON examples, is left alone.

Usage:
    from skillforge.prompts.registry import get_prompt

    prompt = get_prompt("quiz/generate", num_questions="5")
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

PROMPTS_DIR = Path(__file__).parent / "templates"


def _template_path(key: str) -> Path:
    return PROMPTS_DIR / f"{key}.md"


def _read_template(key: str) -> str:
    """Raw template text.

    Raises:
        FileNotFoundError: If no template exists for the key
    """
    path = _template_path(key)
    if not path.is_file():
        raise FileNotFoundError(f"Prompt not found: {key} (looked at {path})")
    return path.read_text(encoding="utf-8")


_read_template_cached = lru_cache(maxsize=32)(_read_template)


def get_prompt(key: str, use_cache: bool = True, **variables: str) -> str:
    """Render a template with the given placeholder values.

    Args:
        key: Template key, e.g. "plan/generate"
        use_cache: Read through the in-process cache
        **variables: Placeholder values, e.g. skill_name="Rust"
    """
    text = _read_template_cached(key) if use_cache else _read_template(key)
    for name, value in variables.items():
        text = text.replace("{" + name + "}", str(value))
    return text


def list_prompts() -> list[str]:
    """Sorted keys of every shipped template."""
    if not PROMPTS_DIR.is_dir():
        logger.warning("prompts.dir_not_found", path=str(PROMPTS_DIR))
        return []
    return sorted(
        path.relative_to(PROMPTS_DIR).with_suffix("").as_posix()
        for path in PROMPTS_DIR.rglob("*.md")
    )


def clear_cache() -> None:
    _read_template_cached.cache_clear()

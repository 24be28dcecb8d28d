"""Prompt templates for provider calls, stored as ``feedgen/prompts/<name>.txt``."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Mapping

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"
_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@lru_cache(maxsize=None)
def _read_template(name: str) -> str:
    path = PROMPTS_DIR / f"{name}.txt"
    if not path.is_file():
        raise FileNotFoundError(f"Prompt template not found: {name} ({path})")
    return path.read_text(encoding="utf-8")


def load_prompt(name: str, variables: Mapping[str, object] | None = None) -> str:
    """Render ``{{placeholder}}`` values into a template.

    Placeholders without a value are left untouched; ``None`` renders as an
    empty string.
    """
    template = _read_template(name)
    if not variables:
        return template
    values = {key: "" if value is None else str(value).strip() for key, value in variables.items()}
    return _PLACEHOLDER_PATTERN.sub(lambda match: values.get(match.group(1), match.group(0)), template)


__all__ = ["load_prompt", "PROMPTS_DIR"]

"""
Message catalogs for user-facing errors and command descriptions.

Catalogs are YAML files shipped in ``imagetools/locales``; keys are looked
up by dotted path (``image-tools.errors.invalid-color``) and ``{0}``,
``{1}``... are replaced by the error parameters.
"""

from __future__ import annotations

import functools
import re
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from .exceptions import OperationError

LOCALES_DIR = Path(__file__).parent / "locales"
DEFAULT_LOCALE = "en-US"
_ALIASES = {"en": "en-US", "zh": "zh-CN"}
_PLACEHOLDER_RE = re.compile(r"\{(\d+)\}")


def available_locales() -> list[str]:
    return sorted(p.stem for p in LOCALES_DIR.glob("*.yml"))


@functools.lru_cache(maxsize=None)
def _load(locale: str) -> Mapping[str, Any]:
    path = LOCALES_DIR / f"{locale}.yml"
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _lookup(tree: Mapping[str, Any], path: str) -> Any:
    node: Any = tree
    for part in path.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def format_message(template: str, params: Sequence[Any]) -> str:
    def sub(m: re.Match) -> str:
        idx = int(m.group(1))
        return str(params[idx]) if idx < len(params) else m.group(0)
    return _PLACEHOLDER_RE.sub(sub, template)


class MessageCatalog:
    """Renders message keys for one locale, falling back to en-US."""

    def __init__(self, locale: str = DEFAULT_LOCALE) -> None:
        locale = _ALIASES.get(locale, locale)
        if locale not in available_locales():
            locale = DEFAULT_LOCALE
        self.locale = locale

    def get(self, path: str, params: Sequence[Any] = ()) -> str:
        for locale in (self.locale, DEFAULT_LOCALE):
            template = _lookup(_load(locale), path)
            if isinstance(template, str):
                return format_message(template, params)
        return path

    def render(self, error: OperationError) -> str:
        return self.get(error.i18n_path, error.params)

    def describe(self, command: str) -> str:
        return self.get(f"commands.{command}.description")

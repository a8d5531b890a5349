"""
Translation tables

Strings live in ``portal/lang/<locale>/<group>.json`` and are addressed by
``group.item`` keys, e.g. ``validation.2fa_code``. Placeholders use the
``:name`` form.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from portal.config import settings

logger = logging.getLogger(__name__)

LANG_PATH = Path(__file__).resolve().parent.parent / "lang"


@lru_cache(maxsize=None)
def load_group(locale: str, group: str) -> dict[str, str]:
    """Load one translation group for a locale, or an empty table."""
    path = LANG_PATH / locale / f"{group}.json"
    if not path.is_file():
        return {}
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def trans(key: str, locale: str | None = None, **replace: Any) -> str:
    """Translate ``key`` into ``locale``.

    Falls back to the configured fallback locale, then to the key itself.
    """
    locale = locale or settings.default_locale
    group, _, item = key.partition(".")

    line = None
    for candidate in dict.fromkeys([locale, settings.fallback_locale]):
        line = load_group(candidate, group).get(item)
        if line is not None:
            break

    if line is None:
        logger.debug(f"Missing translation for '{key}' in '{locale}'")
        return key

    # Longest placeholders first so ":minutes" is not clobbered by ":min"
    for name in sorted(replace, key=len, reverse=True):
        line = line.replace(f":{name}", str(replace[name]))
    return line

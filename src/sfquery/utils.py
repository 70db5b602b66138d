from __future__ import annotations

import re


def sanitize_filename(name: str, repl: str = "_") -> str:
    """
    Make a portable filename:
    - replace invalid characters (/:*?"<>| and whitespace) with `_`
    - strip leading/trailing separators
    - fallback to 'file' if empty
    """
    safe = re.sub(r'[\\/:*?"<>|\s]+', repl, name or "").strip(repl)
    return safe or "file"


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}

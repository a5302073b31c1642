from __future__ import annotations

import json
from typing import Any


def dumps(obj: Any, *, indent: int | None = None) -> str:
    """
    JSON dumper for CLI responses.
    ensure_ascii=False; no trailing newline (the CLI decides).
    """
    return json.dumps(obj, ensure_ascii=False, indent=indent)

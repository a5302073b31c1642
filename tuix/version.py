from __future__ import annotations

from importlib import metadata


def tool_version() -> str:
    try:
        return metadata.version("textui-expander")
    except metadata.PackageNotFoundError:
        # running from a source checkout
        return "0.0.0"


__all__ = ["tool_version"]

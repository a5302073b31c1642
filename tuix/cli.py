from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import EngineConfig
from .document import load_yaml_text, read_document
from .engine import TemplateEngine
from .errors import TuixUserError
from .jsonic import dumps as jdumps
from .model import dump_nodes
from .report_schema import CacheStatsModel, CheckReport, ExpandReport
from .version import tool_version

_LOG = logging.getLogger("tuix")


def _setup_logging_once(debug: bool) -> None:
    if getattr(_setup_logging_once, "_inited", False):
        return
    _setup_logging_once._inited = True  # type: ignore[attr-defined]
    level = logging.DEBUG if debug or os.environ.get("TUIX_DEBUG") else logging.WARNING
    _LOG.setLevel(level)
    if not _LOG.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        _LOG.addHandler(h)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tuix",
        description="TextUI template expansion ($include / $if / $foreach)",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument("--debug", action="store_true", help="debug logging to stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_expand = sub.add_parser("expand", help="Expand a document (JSON)")
    sp_expand.add_argument("file", help="root document (.tui.yml / .template.yml)")
    sp_expand.add_argument(
        "--param",
        action="append",
        metavar="NAME=VALUE",
        help="initial parameter; VALUE is read as a YAML scalar (repeatable)",
    )
    sp_expand.add_argument(
        "--params-file",
        metavar="YAML",
        help="YAML mapping with initial parameters (--param entries override it)",
    )
    sp_expand.add_argument(
        "--document",
        action="store_true",
        help="print the whole document with its component list replaced",
    )
    sp_expand.add_argument(
        "--strict",
        action="store_true",
        help="fail on placeholders that reference undefined parameters",
    )
    sp_expand.add_argument(
        "--stats",
        action="store_true",
        help="include template cache statistics in the output",
    )

    sp_check = sub.add_parser("check", help="Report circular $include chains (JSON)")
    sp_check.add_argument("file", help="root document")

    return p


def _parse_value(raw: str) -> Any:
    if not raw.strip():
        return raw
    try:
        return load_yaml_text(raw)
    except TuixUserError:
        return raw


def _parse_params(params: List[str] | None) -> Dict[str, Any]:
    """Parses NAME=VALUE entries into a dict."""
    result: Dict[str, Any] = {}
    if not params:
        return result

    for entry in params:
        if "=" not in entry:
            raise ValueError(f"Invalid parameter format '{entry}'. Expected 'NAME=VALUE'")
        name, value = entry.split("=", 1)
        name = name.strip()
        if not name:
            raise ValueError(f"Invalid parameter format '{entry}'. Name is empty")
        result[name] = _parse_value(value)

    return result


def _load_params_file(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    file_path = Path(path)
    if not file_path.is_file():
        raise ValueError(f"Params file not found: {file_path}")
    data = load_yaml_text(read_document(file_path), origin=str(file_path))
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Params file must contain a mapping: {file_path}")
    return dict(data)


def _read_root(path: str) -> str:
    file_path = Path(path)
    if not file_path.is_file():
        raise ValueError(f"Document not found: {file_path}")
    return read_document(file_path)


def main(argv: list[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging_once(bool(ns.debug))

    try:
        if ns.cmd == "expand":
            params = _load_params_file(ns.params_file)
            params.update(_parse_params(ns.param))
            config = EngineConfig.from_env(strict_params=bool(ns.strict))
            text = _read_root(ns.file)

            with TemplateEngine(config) as engine:
                report = ExpandReport(file=str(Path(ns.file).resolve()), params=params)
                if ns.document:
                    report.document = engine.expand_document(text, ns.file, params)
                else:
                    report.components = dump_nodes(engine.expand(text, ns.file, params))
                if ns.stats:
                    report.cache = CacheStatsModel.from_stats(engine.cache_stats())

            unset = {name for name in ("components", "document", "cache") if getattr(report, name) is None}
            sys.stdout.write(jdumps(report.model_dump(mode="json", by_alias=True, exclude=unset)))
            return 0

        if ns.cmd == "check":
            text = _read_root(ns.file)
            with TemplateEngine(EngineConfig.from_env()) as engine:
                cycle = engine.detect_circular_references(text, ns.file)
            report = CheckReport(file=str(Path(ns.file).resolve()), ok=not cycle, cycle=cycle)
            sys.stdout.write(jdumps(report.model_dump(mode="json")))
            return 0 if report.ok else 1

    except TuixUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2
    except ValueError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2

    return 2


if __name__ == "__main__":
    raise SystemExit(main())

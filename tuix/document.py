"""
Loading of YAML documents into node trees.

Parsing is lenient about directive shapes: a malformed directive becomes a
MalformedNode and is reported only when the walker reaches it.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import TemplateError, TemplateErrorKind
from .model import (
    DIRECTIVE_KEYS,
    ComponentNode,
    ContainerNode,
    ElementNode,
    ForeachDirective,
    FormNode,
    IfDirective,
    IncludeDirective,
    MalformedNode,
    NodeKind,
)

# YAML instances are not thread-safe: one per thread
_local = threading.local()


def _yaml() -> YAML:
    y = getattr(_local, "yaml", None)
    if y is None:
        y = _local.yaml = YAML(typ="safe")
    return y


def load_yaml_text(text: str, *, origin: Optional[str] = None) -> Any:
    """Parses YAML text; syntax errors become TemplateError(DocumentSyntaxError)."""
    try:
        return _yaml().load(text)
    except YAMLError as e:
        raise TemplateError(
            TemplateErrorKind.DOCUMENT_SYNTAX,
            f"Invalid YAML: {e}",
            template_path=origin,
        ) from e
    except RecursionError as e:
        raise _too_deep(origin) from e


def _too_deep(origin: Optional[str]) -> TemplateError:
    return TemplateError(
        TemplateErrorKind.DEPTH_EXCEEDED,
        "Document nesting is too deep",
        template_path=origin,
    )


def read_document(path: Path) -> str:
    """
    Reads a document from disk.

    Raises:
        FileNotFoundError: the file does not exist (callers map it to TemplateNotFound)
        TemplateError(LoadError): any other I/O failure
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateError(
            TemplateErrorKind.LOAD_ERROR,
            f"Failed to read {path}: {e}",
            template_path=str(path),
        ) from e


def extract_components(data: Any, *, origin: Optional[str] = None) -> List[Any]:
    """
    Picks the component list out of a parsed document.

    Accepted shapes:
      - null (empty document)
      - a sequence of nodes
      - `page: {components: [...]}`
      - `{components: [...]}`
      - a single node mapping
    """
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        page = data.get("page")
        if isinstance(page, Mapping):
            return _as_list(page.get("components"), "page.components", origin)
        if _looks_like_node(data):
            return [data]
        if "components" in data:
            return _as_list(data.get("components"), "components", origin)
        return [data]
    raise TemplateError(
        TemplateErrorKind.DOCUMENT_SYNTAX,
        f"Document root must be a sequence or mapping, got {type(data).__name__}",
        template_path=origin,
    )


def _looks_like_node(data: Mapping) -> bool:
    if len(data) != 1:
        return False
    key = next(iter(data))
    return isinstance(key, str) and (key.startswith("$") or key[:1].isupper())


def _as_list(value: Any, where: str, origin: Optional[str]) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TemplateError(
            TemplateErrorKind.DOCUMENT_SYNTAX,
            f"'{where}' must be a sequence, got {type(value).__name__}",
            template_path=origin,
        )
    return value


def replace_components(data: Any, components: List[Any]) -> Any:
    """
    Puts an expanded component list back into the shape `data` came in.

    The inverse of `extract_components`; other top-level keys are kept.
    """
    if isinstance(data, Mapping):
        page = data.get("page")
        if isinstance(page, Mapping):
            result = dict(data)
            result["page"] = {**page, "components": components}
            return result
        if not _looks_like_node(data) and "components" in data:
            return {**data, "components": components}
    return components


def parse_document(text: str, *, origin: Optional[str] = None) -> Tuple[ComponentNode, ...]:
    """Text → top-level node sequence."""
    data = load_yaml_text(text, origin=origin)
    return parse_nodes(extract_components(data, origin=origin), origin=origin)


def parse_nodes(items: Any, *, origin: Optional[str] = None) -> Tuple[ComponentNode, ...]:
    try:
        return _parse_nodes(items)
    except RecursionError as e:
        raise _too_deep(origin) from e


def _parse_nodes(items: Any) -> Tuple[ComponentNode, ...]:
    return tuple(parse_node(item) for item in items)


def parse_node(raw: Any) -> ComponentNode:
    if not isinstance(raw, Mapping) or len(raw) != 1:
        return MalformedNode(raw=raw, message="Component record must be a mapping with exactly one key")

    key, body = next(iter(raw.items()))
    if not isinstance(key, str):
        return MalformedNode(raw=raw, message=f"Component name must be a string, got {key!r}")

    if key.startswith("$"):
        return _parse_directive(key, body, raw)

    if body is None:
        body = {}
    if not isinstance(body, Mapping):
        return MalformedNode(raw=raw, message=f"'{key}' properties must be a mapping")

    kind = NodeKind.for_component(key)
    if kind is NodeKind.CONTAINER:
        children = body.get("components")
        if children is not None and not isinstance(children, list):
            return MalformedNode(raw=raw, message="'Container.components' must be a sequence")
        props = {k: v for k, v in body.items() if k != "components"}
        return ContainerNode(props=props, components=_parse_nodes(children or []))

    if kind is NodeKind.FORM:
        fields, actions = body.get("fields"), body.get("actions")
        for name, value in (("fields", fields), ("actions", actions)):
            if value is not None and not isinstance(value, list):
                return MalformedNode(raw=raw, message=f"'Form.{name}' must be a sequence")
        props = {k: v for k, v in body.items() if k not in ("fields", "actions")}
        return FormNode(props=props, fields=_parse_nodes(fields or []), actions=_parse_nodes(actions or []))

    return ElementNode(name=key, props=dict(body))


def _parse_directive(key: str, body: Any, raw: Any) -> ComponentNode:
    if key not in DIRECTIVE_KEYS:
        return MalformedNode(raw=raw, message="unknown directive", directive=key, field=key)
    if not isinstance(body, Mapping):
        return MalformedNode(raw=raw, message="must be a mapping", directive=key, field=key)

    if key == NodeKind.INCLUDE.value:
        template = body.get("template")
        if not isinstance(template, str) or not template.strip():
            return _missing(raw, key, "template", template)
        params = body.get("params")
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            return MalformedNode(raw=raw, message="field must be a mapping", directive=key, field="params")
        return IncludeDirective(template=template.strip(), params=dict(params))

    if key == NodeKind.IF.value:
        condition = body.get("condition")
        if isinstance(condition, bool):
            condition = "true" if condition else "false"
        elif isinstance(condition, (int, float)):
            condition = str(condition)
        if not isinstance(condition, str):
            return _missing(raw, key, "condition", condition)
        template = body.get("template")
        if not isinstance(template, list):
            return _missing(raw, key, "template", template)
        return IfDirective(condition=condition, template=_parse_nodes(template))

    items = body.get("items")
    if not isinstance(items, (str, list)):
        return _missing(raw, key, "items", items)
    alias = body.get("as")
    if not isinstance(alias, str) or not alias.strip():
        return _missing(raw, key, "as", alias)
    template = body.get("template")
    if not isinstance(template, list):
        return _missing(raw, key, "template", template)
    return ForeachDirective(items=items, alias=alias.strip(), template=_parse_nodes(template))


def _missing(raw: Any, directive: str, field: str, value: Any) -> MalformedNode:
    problem = "is missing required field" if value is None else "has an invalid field"
    return MalformedNode(raw=raw, message=problem, directive=directive, field=field)


__all__ = [
    "load_yaml_text",
    "read_document",
    "extract_components",
    "replace_components",
    "parse_document",
    "parse_nodes",
    "parse_node",
]

"""
Document model: a closed tagged union of component and directive nodes.

Every node is an immutable dataclass. The walker dispatches on
`get_kind()`; nothing downstream inspects raw mappings for `$` keys.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union


class NodeKind(Enum):
    """Node variants. Component names match the document keys."""
    TEXT = "Text"
    INPUT = "Input"
    BUTTON = "Button"
    CHECKBOX = "Checkbox"
    RADIO = "Radio"
    SELECT = "Select"
    DIVIDER = "Divider"
    ALERT = "Alert"
    CONTAINER = "Container"
    FORM = "Form"
    # Any other component name; the schema is checked after expansion
    OTHER = "*"
    INCLUDE = "$include"
    IF = "$if"
    FOREACH = "$foreach"
    # Node that could not be built; reported when (and only if) visited
    MALFORMED = "!malformed"

    @classmethod
    def for_component(cls, name: str) -> "NodeKind":
        try:
            kind = cls(name)
        except ValueError:
            return cls.OTHER
        return kind if kind not in DIRECTIVE_KINDS and kind is not cls.MALFORMED else cls.OTHER


DIRECTIVE_KINDS = frozenset({NodeKind.INCLUDE, NodeKind.IF, NodeKind.FOREACH})
DIRECTIVE_KEYS = frozenset(k.value for k in DIRECTIVE_KINDS)


@dataclass(frozen=True)
class ComponentNode(ABC):
    """Base class for every node of a document tree."""

    @abstractmethod
    def get_kind(self) -> NodeKind:
        pass

    @property
    def is_directive(self) -> bool:
        return self.get_kind() in DIRECTIVE_KINDS

    @abstractmethod
    def to_data(self) -> Dict[str, Any]:
        """Plain `{Name: {...}}` record as it would appear in a document."""
        pass


@dataclass(frozen=True)
class ElementNode(ComponentNode):
    """Leaf component: Text, Input, Button, Alert, ..."""
    name: str
    props: Mapping[str, Any] = field(default_factory=dict)

    def get_kind(self) -> NodeKind:
        return NodeKind.for_component(self.name)

    def to_data(self) -> Dict[str, Any]:
        return {self.name: dict(self.props)}


@dataclass(frozen=True)
class ContainerNode(ComponentNode):
    """Container with an ordered `components` sequence."""
    props: Mapping[str, Any] = field(default_factory=dict)
    components: Tuple[ComponentNode, ...] = ()

    name = NodeKind.CONTAINER.value

    def get_kind(self) -> NodeKind:
        return NodeKind.CONTAINER

    def to_data(self) -> Dict[str, Any]:
        body = dict(self.props)
        body["components"] = dump_nodes(self.components)
        return {self.name: body}


@dataclass(frozen=True)
class FormNode(ComponentNode):
    """Form with ordered `fields` and `actions` sequences."""
    props: Mapping[str, Any] = field(default_factory=dict)
    fields: Tuple[ComponentNode, ...] = ()
    actions: Tuple[ComponentNode, ...] = ()

    name = NodeKind.FORM.value

    def get_kind(self) -> NodeKind:
        return NodeKind.FORM

    def to_data(self) -> Dict[str, Any]:
        body = dict(self.props)
        body["fields"] = dump_nodes(self.fields)
        body["actions"] = dump_nodes(self.actions)
        return {self.name: body}


@dataclass(frozen=True)
class IncludeDirective(ComponentNode):
    """`$include: {template: path, params: {...}}`"""
    template: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def get_kind(self) -> NodeKind:
        return NodeKind.INCLUDE

    def to_data(self) -> Dict[str, Any]:
        return {NodeKind.INCLUDE.value: {"template": self.template, "params": dict(self.params)}}


@dataclass(frozen=True)
class IfDirective(ComponentNode):
    """`$if: {condition: expr, template: [...]}`"""
    condition: str
    template: Tuple[ComponentNode, ...] = ()

    def get_kind(self) -> NodeKind:
        return NodeKind.IF

    def to_data(self) -> Dict[str, Any]:
        return {NodeKind.IF.value: {"condition": self.condition, "template": dump_nodes(self.template)}}


@dataclass(frozen=True)
class ForeachDirective(ComponentNode):
    """`$foreach: {items: ref, as: name, template: [...]}`"""
    items: Any
    alias: str
    template: Tuple[ComponentNode, ...] = ()

    def get_kind(self) -> NodeKind:
        return NodeKind.FOREACH

    def to_data(self) -> Dict[str, Any]:
        return {NodeKind.FOREACH.value: {
            "items": self.items,
            "as": self.alias,
            "template": dump_nodes(self.template),
        }}


@dataclass(frozen=True)
class MalformedNode(ComponentNode):
    """
    Placeholder for a record that does not have a valid node shape.

    Kept in the tree so that a branch that is never visited (false `$if`)
    cannot fail the expansion.
    """
    raw: Any
    message: str
    directive: Optional[str] = None
    field: Optional[str] = None

    def get_kind(self) -> NodeKind:
        return NodeKind.MALFORMED

    def to_data(self) -> Dict[str, Any]:
        return self.raw if isinstance(self.raw, dict) else {"$malformed": self.raw}


AnyNode = Union[
    ElementNode,
    ContainerNode,
    FormNode,
    IncludeDirective,
    IfDirective,
    ForeachDirective,
    MalformedNode,
]


def dump_nodes(nodes: Tuple[ComponentNode, ...] | List[ComponentNode]) -> List[Dict[str, Any]]:
    """Turns nodes back into plain data for the validator/renderer."""
    return [node.to_data() for node in nodes]


__all__ = [
    "NodeKind",
    "DIRECTIVE_KINDS",
    "DIRECTIVE_KEYS",
    "ComponentNode",
    "ElementNode",
    "ContainerNode",
    "FormNode",
    "IncludeDirective",
    "IfDirective",
    "ForeachDirective",
    "MalformedNode",
    "AnyNode",
    "dump_nodes",
]

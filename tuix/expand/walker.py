"""
Directive-aware depth-first expansion of a node tree.

The walker is the only place where directives are interpreted:
  - `$if` gates its template on a condition (false branches are never entered)
  - `$foreach` repeats its template once per item of a sequence
  - `$include` inlines another template file under the cycle detector
Everything else is copied through with placeholders substituted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, Callable, Dict, List, Optional, Tuple

from .cancel import CancellationToken
from .frame import ExpansionFrame
from ..cache import TemplateCache
from ..conditions import evaluate
from ..config import EngineConfig
from ..errors import TemplateError, TemplateErrorKind, TuixUserError, invalid_directive, not_found
from ..model import (
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
from ..params import MISSING, ParameterContext, ParameterSubstitutor
from ..params.substitutor import whole_placeholder

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yml", ".yaml")


@dataclass(frozen=True)
class Location:
    """File currently being expanded and the directory its includes resolve against."""
    file: Optional[str]
    directory: Path


class TreeWalker:
    """
    Expands one top-level document.

    A walker owns a single ExpansionFrame and is meant to be used for one
    top-level call; the cache and substitutor may be shared.
    """

    def __init__(
        self,
        cache: TemplateCache,
        *,
        substitutor: Optional[ParameterSubstitutor] = None,
        config: Optional[EngineConfig] = None,
        token: Optional[CancellationToken] = None,
        root_file: Optional[str] = None,
    ):
        self.cache = cache
        self.config = config if config is not None else EngineConfig()
        self.substitutor = substitutor if substitutor is not None else ParameterSubstitutor(strict=self.config.strict_params)
        self.token = token
        self.frame = ExpansionFrame(root_file, max_depth=self.config.max_include_depth)

        self._handlers: Dict[NodeKind, Callable[[Any, ParameterContext, Location, List[ComponentNode]], None]] = {
            NodeKind.CONTAINER: self._visit_container,
            NodeKind.FORM: self._visit_form,
            NodeKind.IF: self._visit_if,
            NodeKind.FOREACH: self._visit_foreach,
            NodeKind.INCLUDE: self._visit_include,
            NodeKind.MALFORMED: self._visit_malformed,
        }

    # ---------------------------- public API ---------------------------- #

    def expand(
        self,
        nodes: Sequence[ComponentNode],
        params: ParameterContext,
        location: Location,
    ) -> List[ComponentNode]:
        out: List[ComponentNode] = []
        self._expand_into(nodes, params, location, out)
        return out

    # ---------------------------- traversal ----------------------------- #

    def _expand_into(
        self,
        nodes: Sequence[ComponentNode],
        params: ParameterContext,
        location: Location,
        out: List[ComponentNode],
    ) -> None:
        for node in nodes:
            self._visit(node, params, location, out)

    def _expand_children(self, nodes: Sequence[ComponentNode], params: ParameterContext, location: Location) -> Tuple[ComponentNode, ...]:
        out: List[ComponentNode] = []
        self._expand_into(nodes, params, location, out)
        return tuple(out)

    def _visit(self, node: ComponentNode, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        if self.token is not None:
            self.token.raise_if_cancelled(location.file)

        handler = self._handlers.get(node.get_kind(), self._visit_element)
        try:
            handler(node, params, location, out)
        except TemplateError as e:
            if e.template_path is None:
                e.template_path = location.file
            raise
        except TuixUserError:
            raise
        except RecursionError as e:
            raise TemplateError(
                TemplateErrorKind.DEPTH_EXCEEDED,
                "Document nesting is too deep",
                template_path=location.file,
            ) from e
        except Exception as e:
            raise TemplateError(
                TemplateErrorKind.LOAD_ERROR,
                f"Unexpected error while expanding: {e}",
                template_path=location.file,
            ) from e

    # ----------------------------- handlers ----------------------------- #

    def _visit_element(self, node: ElementNode, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        out.append(ElementNode(name=node.name, props=self.substitutor.substitute_tree(node.props, params)))

    def _visit_container(self, node: ContainerNode, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        out.append(ContainerNode(
            props=self.substitutor.substitute_tree(node.props, params),
            components=self._expand_children(node.components, params, location),
        ))

    def _visit_form(self, node: FormNode, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        out.append(FormNode(
            props=self.substitutor.substitute_tree(node.props, params),
            fields=self._expand_children(node.fields, params, location),
            actions=self._expand_children(node.actions, params, location),
        ))

    def _visit_if(self, node: IfDirective, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        if evaluate(node.condition, params):
            self._expand_into(node.template, params, location, out)

    def _visit_foreach(self, node: ForeachDirective, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        items = self._resolve_items(node.items, params)
        if items is None:
            logger.debug("$foreach over %r: not a sequence, no iterations", node.items)
            return
        for item in items:
            self._expand_into(node.template, params.child(**{node.alias: item}), location, out)

    def _resolve_items(self, items: Any, params: ParameterContext) -> Optional[Sequence[Any]]:
        if isinstance(items, str):
            reference = whole_placeholder(items)
            value = self.substitutor.lookup(reference if reference is not None else items, params)
        else:
            value = self.substitutor.substitute_value(items, params)
        if value is MISSING or isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
            return None
        return value

    def _visit_include(self, node: IncludeDirective, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        target = self.resolve_include(node.template, params, location)
        key = str(target)
        logger.debug("include %s -> %s (depth %d)", node.template, key, self.frame.depth + 1)

        with self.frame.scope(key):
            try:
                raw_tree = self.cache.get_or_load(target)
            except FileNotFoundError as e:
                raise not_found(key, requested=node.template, origin=location.file) from e
            inner = ParameterContext(self.substitutor.substitute_value(dict(node.params), params))
            self._expand_into(raw_tree, inner, Location(key, target.parent), out)

    def _visit_malformed(self, node: MalformedNode, params: ParameterContext, location: Location, out: List[ComponentNode]) -> None:
        if node.directive is not None:
            raise invalid_directive(node.directive, node.field or node.directive, node.message, origin=location.file)
        raise TemplateError(
            TemplateErrorKind.DOCUMENT_SYNTAX,
            f"{node.message}: {node.raw!r}",
            template_path=location.file,
        )

    # --------------------------- path helpers --------------------------- #

    def resolve_include(self, template: str, params: ParameterContext, location: Location) -> Path:
        """
        Resolves an include target relative to the including document.

        Raises:
            TemplateError(InvalidDirective): empty or absolute path
            TemplateError(TemplateNotFound): no such file
        """
        name = self.substitutor.substitute(template, params).strip()
        if not name:
            raise invalid_directive("$include", "template", "has an empty field", origin=location.file)
        if PurePosixPath(name).is_absolute() or PureWindowsPath(name).is_absolute():
            raise invalid_directive("$include", "template", "must be a relative path", origin=location.file)

        candidate = (location.directory / name).resolve()
        if not candidate.is_file() and not name.lower().endswith(_YAML_SUFFIXES):
            suffixed = (location.directory / (name + self.config.template_suffix)).resolve()
            if suffixed.is_file():
                candidate = suffixed
        if not candidate.is_file():
            raise not_found(str(candidate), requested=template, origin=location.file)
        return candidate


__all__ = ["TreeWalker", "Location"]

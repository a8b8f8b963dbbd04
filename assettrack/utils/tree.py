from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional


PATH_SEPARATOR = " > "


def node_attr(node, name, default=None):
    """Read a field from a model instance or a plain dict node."""
    if isinstance(node, Mapping):
        return node.get(name, default)
    return getattr(node, name, default)


def _default_children(node):
    return node_attr(node, "children") or ()


def _default_name(node):
    return node_attr(node, "name") or ""


@dataclass
class FlatNode:
    name: str
    path: str
    depth: int
    node: Any
    parents: tuple = ()
    model_number: str = ""
    is_leaf: bool = True

    @property
    def hierarchy(self) -> str:
        return PATH_SEPARATOR.join(self.parents)


def flatten_tree(
    nodes: Optional[Iterable],
    children: Callable = _default_children,
    name: Callable = _default_name,
    parents: tuple = (),
) -> list:
    """
    Depth-first flatten of a tree. Every node (internal and leaf) becomes one
    FlatNode whose path is its ancestors' names joined with " > ".
    """
    flat = []
    for node in nodes or ():
        label = name(node)
        kids = list(children(node) or ())
        flat.append(
            FlatNode(
                name=label,
                path=PATH_SEPARATOR.join(parents + (label,)),
                depth=len(parents) + 1,
                node=node,
                parents=parents,
                model_number=(node_attr(node, "model_number") or "").strip(),
                is_leaf=not kids,
            )
        )
        flat.extend(flatten_tree(kids, children, name, parents + (label,)))
    return flat

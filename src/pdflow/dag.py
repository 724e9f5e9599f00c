# dag.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, List, Optional, Protocol, Tuple, TypeVar

from .errors import CompositionFailure

M = TypeVar("M")
F = TypeVar("F")


class NamedNode(Protocol):
    """A payload that can be located in a Dag by a stable name."""
    name: str


@dataclass
class Dag(Generic[F]):
    """
    A design hierarchy: one payload per node plus ordered child subgraphs.

    Edges point from a block to the blocks it is composed from, so children
    must be built before their parent.
    """
    node: F
    children: List["Dag[F]"] = field(default_factory=list)

    def walk(self) -> Iterator["Dag[F]"]:
        """Pre-order iteration over every subgraph, root first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def find(self, name: str) -> Optional[F]:
        return find(self, name)


def hierarchical(
    dag: Dag[M],
    generate: Callable[[M, List[Tuple[M, F]]], F],
) -> Dag[F]:
    """
    Convert a Dag of module descriptions into a Dag of build plans.

    Children are converted first; `generate` then receives the current
    payload plus (child payload, child result) pairs in child order.
    The result has exactly the shape of `dag`.

    Raises:
        CompositionFailure: if `generate` fails for any node. Nothing is
            returned for the rest of the graph.
    """
    converted = [hierarchical(child, generate) for child in dag.children]
    pairs = [(child.node, done.node) for child, done in zip(dag.children, converted)]

    try:
        result = generate(dag.node, pairs)
    except CompositionFailure:
        raise
    except Exception as e:
        name = getattr(dag.node, "name", repr(dag.node))
        raise CompositionFailure(module=name, message=str(e) or type(e).__name__) from e

    return Dag(node=result, children=converted)


def find(dag: Dag[F], name: str) -> Optional[F]:
    """
    Depth-first search for the first payload whose `name` matches.

    The payload returned is the object held by the graph, so changes made
    through it (hooks, checkpoints, pins) are seen by the scheduler.
    """
    for sub in dag.walk():
        if getattr(sub.node, "name", None) == name:
            return sub.node
    return None

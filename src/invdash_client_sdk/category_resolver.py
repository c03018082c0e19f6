from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .models_catalog import CategoryNode


@dataclass
class CategoryIndex:
    """Flattened view of a category tree: names plus parent -> children links by id.

    The backend may send a nested tree (``children``), a flat list with
    ``parentId`` links, or a mix. Both kinds of link are merged. Links are
    followed by id, so a malformed graph with cycles is walked with a visited
    set and always terminates.
    """

    names: dict[int, str] = field(default_factory=dict)
    children: dict[int, set[int]] = field(default_factory=dict)

    @classmethod
    def from_tree(cls, roots: Sequence[CategoryNode]) -> CategoryIndex:
        index = cls()
        stack: list[tuple[CategoryNode, int | None]] = [(node, None) for node in roots]
        while stack:
            node, parent_id = stack.pop()
            index.names.setdefault(node.id, node.name)
            index.children.setdefault(node.id, set())
            for linked_parent in (parent_id, node.parent_id):
                if linked_parent is not None and linked_parent != node.id:
                    index.children.setdefault(linked_parent, set()).add(node.id)
            stack.extend((child, node.id) for child in node.children)
        return index

    def __contains__(self, category_id: object) -> bool:
        return category_id in self.names

    def descendants(self, category_id: int) -> set[int]:
        """Return ``category_id`` and every id reachable below it."""
        if category_id not in self.names:
            return set()
        visited: set[int] = set()
        pending = [category_id]
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            pending.extend(child for child in self.children.get(current, ()) if child not in visited)
        return visited

    def resolve(self, selected: Iterable[int]) -> frozenset[int]:
        resolved: set[int] = set()
        for category_id in selected:
            if category_id in resolved:
                continue
            resolved |= self.descendants(category_id)
        return frozenset(resolved)


def resolve_category_ids(selected: Iterable[int], tree: Sequence[CategoryNode] | None) -> frozenset[int]:
    """Expand selected categories to include all of their descendants.

    Returns an empty set while the tree has not been loaded. Ids that are not
    part of the loaded tree are dropped.
    """
    if tree is None:
        return frozenset()
    return CategoryIndex.from_tree(tree).resolve(selected)

"""Build a package/member hierarchy from flat qualified names."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Union

from .logging import get_logger

logger = get_logger("namespace")

DEFAULT_DELIMITER = "/"


@dataclass(frozen=True)
class MemberNode:
    """Leaf node naming one decompiled member."""

    display_name: str
    qualified_name: str


@dataclass
class PackageNode:
    """Interior node for one distinct package prefix.

    Packages and members live in separate tables so a member never shadows a
    package with the same segment; ``children`` merges both in first-seen order.
    """

    segment: str
    packages: Dict[str, "PackageNode"] = field(default_factory=dict)
    members: Dict[str, MemberNode] = field(default_factory=dict)
    _order: list = field(default_factory=list, repr=False)

    @property
    def children(self) -> list["NamespaceNode"]:
        nodes: list[NamespaceNode] = []
        for kind, key in self._order:
            if kind == "package":
                nodes.append(self.packages[key])
            else:
                nodes.append(self.members[key])
        return nodes

    def add_package(self, segment: str) -> "PackageNode":
        existing = self.packages.get(segment)
        if existing is not None:
            return existing
        node = PackageNode(segment=segment)
        self.packages[segment] = node
        self._order.append(("package", segment))
        return node

    def add_member(self, member: MemberNode) -> None:
        if member.display_name not in self.members:
            self._order.append(("member", member.display_name))
        self.members[member.display_name] = member


NamespaceNode = Union[PackageNode, MemberNode]


def split_qualified_name(qualified_name: str, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    parts = qualified_name.split(delimiter)
    if not qualified_name or any(not part for part in parts):
        raise ValueError(f"Invalid qualified name: {qualified_name!r}")
    return parts


def build_namespace_tree(
    names: Iterable[str],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    skip_invalid: bool = False,
) -> PackageNode:
    """Arrange ``names`` into a tree rooted at an unnamed package.

    Names are visited in sorted order so the sibling order only depends on the
    input set. Each distinct prefix produces exactly one package node. Names
    with empty segments raise ``ValueError`` unless ``skip_invalid`` is set, in
    which case they are logged and left out.
    """

    root = PackageNode(segment="")
    package_lookup: dict[str, PackageNode] = {"": root}

    for qualified_name in sorted(names):
        try:
            parts = split_qualified_name(qualified_name, delimiter)
        except ValueError:
            if not skip_invalid:
                raise
            logger.warning("Skipping invalid qualified name %r", qualified_name)
            continue
        current = root
        prefix = ""
        for part in parts[:-1]:
            prefix = f"{prefix}{delimiter}{part}" if prefix else part
            node = package_lookup.get(prefix)
            if node is None:
                node = current.add_package(part)
                package_lookup[prefix] = node
            current = node

        current.add_member(MemberNode(display_name=parts[-1], qualified_name=qualified_name))

    return root


def iter_members(node: NamespaceNode) -> Iterator[MemberNode]:
    """Yield every member below ``node`` depth-first in sibling order."""

    if isinstance(node, MemberNode):
        yield node
        return
    for child in node.children:
        yield from iter_members(child)


def count_members(node: NamespaceNode) -> int:
    return sum(1 for _ in iter_members(node))


def find_member(
    root: PackageNode, qualified_name: str, *, delimiter: str = DEFAULT_DELIMITER
) -> Optional[MemberNode]:
    try:
        parts = split_qualified_name(qualified_name, delimiter)
    except ValueError:
        return None
    current = root
    for part in parts[:-1]:
        next_node = current.packages.get(part)
        if next_node is None:
            return None
        current = next_node
    return current.members.get(parts[-1])


def format_tree(root: PackageNode, *, indent: str = "  ") -> list[str]:
    """Render the tree as indented lines, packages suffixed with the delimiter."""

    lines: list[str] = []

    def visit(node: PackageNode, depth: int) -> None:
        for child in node.children:
            if isinstance(child, PackageNode):
                lines.append(f"{indent * depth}{child.segment}/")
                visit(child, depth + 1)
            else:
                lines.append(f"{indent * depth}{child.display_name}")

    visit(root, 0)
    return lines


__all__ = [
    "DEFAULT_DELIMITER",
    "MemberNode",
    "NamespaceNode",
    "PackageNode",
    "build_namespace_tree",
    "count_members",
    "find_member",
    "format_tree",
    "iter_members",
    "split_qualified_name",
]

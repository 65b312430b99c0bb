from __future__ import annotations

from pathlib import Path
from unittest import TestCase

import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from decomp_viewer.namespace import (  # noqa: E402
    MemberNode,
    PackageNode,
    build_namespace_tree,
    count_members,
    find_member,
    format_tree,
    iter_members,
)


def _shape(node: PackageNode) -> list:
    shape = []
    for child in node.children:
        if isinstance(child, PackageNode):
            shape.append((child.segment, _shape(child)))
        else:
            shape.append(child.display_name)
    return shape


class BuildNamespaceTreeTests(TestCase):
    def test_groups_members_under_packages(self) -> None:
        root = build_namespace_tree({"a/B", "a/C", "a/b/D"})

        self.assertEqual([("a", ["B", "C", ("b", ["D"])])], _shape(root))
        package_a = root.packages["a"]
        self.assertEqual(
            MemberNode(display_name="D", qualified_name="a/b/D"),
            package_a.packages["b"].members["D"],
        )

    def test_every_name_appears_exactly_once(self) -> None:
        names = {"x/y/Z", "x/y/W", "x/V", "U", "p/q/r/S"}
        root = build_namespace_tree(names)

        qualified = [member.qualified_name for member in iter_members(root)]
        self.assertEqual(sorted(names), sorted(qualified))
        self.assertEqual(len(names), count_members(root))
        for name in names:
            self.assertIsNotNone(find_member(root, name))

    def test_single_segment_names_attach_to_root(self) -> None:
        root = build_namespace_tree(["Main"])

        self.assertEqual(["Main"], _shape(root))
        self.assertEqual("", root.segment)

    def test_empty_input_yields_empty_root(self) -> None:
        root = build_namespace_tree([])

        self.assertEqual([], root.children)

    def test_duplicate_names_collapse(self) -> None:
        root = build_namespace_tree(["a/B", "a/B", "a/C"])

        self.assertEqual([("a", ["B", "C"])], _shape(root))

    def test_shared_prefixes_create_one_package(self) -> None:
        root = build_namespace_tree(["com/x/A", "com/y/B", "com/x/C"])

        self.assertEqual(["com"], list(root.packages))
        self.assertEqual(["x", "y"], list(root.packages["com"].packages))

    def test_structure_is_independent_of_input_order(self) -> None:
        names = ["b/Z", "a/c/D", "a/B", "b/A", "Top"]
        forward = build_namespace_tree(names)
        backward = build_namespace_tree(list(reversed(names)))

        self.assertEqual(_shape(forward), _shape(backward))

    def test_custom_delimiter(self) -> None:
        root = build_namespace_tree(["java.lang.String"], delimiter=".")

        self.assertEqual([("java", [("lang", ["String"])])], _shape(root))
        member = find_member(root, "java.lang.String", delimiter=".")
        self.assertEqual("java.lang.String", member.qualified_name)

    def test_rejects_empty_segments(self) -> None:
        with self.assertRaises(ValueError):
            build_namespace_tree(["a//B"])

    def test_skip_invalid_leaves_out_bad_names(self) -> None:
        with self.assertLogs("decomp_viewer.namespace", level="WARNING") as logs:
            root = build_namespace_tree(["com/A", "/com/B", "a//C", ""], skip_invalid=True)

        self.assertEqual([("com", ["A"])], _shape(root))
        self.assertEqual(3, len(logs.output))

    def test_find_member_unknown_name(self) -> None:
        root = build_namespace_tree(["a/B"])

        self.assertIsNone(find_member(root, "a/C"))
        self.assertIsNone(find_member(root, "z/B"))
        self.assertIsNone(find_member(root, ""))

    def test_format_tree_indents_packages(self) -> None:
        root = build_namespace_tree(["a/B", "a/b/D"])

        self.assertEqual(["a/", "  B", "  b/", "    D"], format_tree(root))

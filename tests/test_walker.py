"""Tests for the adaptive directory walker."""

from __future__ import annotations

import posixpath
from datetime import datetime, timezone
from typing import Dict, List, Tuple

import pytest

from ftpindex.errors import ListingError, ListingUnavailable
from ftpindex.index.leaves import extract_leaves
from ftpindex.index.walker import Walker, normalize_root, walk
from ftpindex.models import Entry, EntryKind

STAMP = datetime(2024, 1, 1, tzinfo=timezone.utc)
D = EntryKind.DIRECTORY
F = EntryKind.FILE


class StubLister:
    """Serves listings from a dict of path -> [(name, kind)]."""

    def __init__(
        self, tree: Dict[str, List[Tuple[str, EntryKind]]], failing: Tuple[str, ...] = ()
    ) -> None:
        self.tree = tree
        self.failing = set(failing)
        self.calls: List[str] = []

    def list(self, path: str) -> List[Entry]:
        self.calls.append(path)
        if path in self.failing:
            raise ListingError(path, "550 Permission denied.")
        return [
            Entry(name=name, path=posixpath.join(path, name), kind=kind, modified=STAMP)
            for name, kind in self.tree.get(path, [])
        ]


def _paths(entries) -> List[str]:
    return [entry.path for entry in entries]


@pytest.fixture
def mixed_tree() -> StubLister:
    return StubLister(
        {
            "/root": [("a", D), ("b", D)],
            "/root/a": [("x", D), ("y", D)],
            "/root/b": [("f", F)],
        }
    )


class TestWalker:
    """Test Walker traversal decisions."""

    def test_peeks_content_directory_without_descending(self, mixed_tree: StubLister) -> None:
        tree = Walker(mixed_tree).walk("/root")

        assert mixed_tree.calls == ["/root", "/root/a", "/root/a/x", "/root/a/y", "/root/b"]
        assert set(_paths(tree)) == {
            "/root/a",
            "/root/b",
            "/root/a/x",
            "/root/a/y",
            "/root/b/f",
        }
        assert tree.unavailable == []

    def test_each_directory_listed_once(self, mixed_tree: StubLister) -> None:
        Walker(mixed_tree).walk("/root")

        assert len(mixed_tree.calls) == len(set(mixed_tree.calls))

    def test_content_sibling_listed_first_does_not_stop_others(self) -> None:
        lister = StubLister(
            {
                "/root": [("b", D), ("a", D)],
                "/root/a": [("x", D), ("y", D)],
                "/root/b": [("f", F)],
            }
        )

        tree = Walker(lister).walk("/root")

        assert lister.calls == ["/root", "/root/b", "/root/a", "/root/a/x", "/root/a/y"]
        assert {leaf.path for leaf in extract_leaves(tree)} == {
            "/root/a/x",
            "/root/a/y",
            "/root/b",
        }

    def test_every_content_sibling_is_peeked(self) -> None:
        lister = StubLister(
            {
                "/pub": [("r1", D), ("r2", D), ("r3", D), ("index.txt", F)],
                "/pub/r1": [("a.tar", F)],
                "/pub/r2": [("b.tar", F)],
                "/pub/r3": [("nested", D)],
            }
        )

        tree = Walker(lister).walk("/pub")

        assert lister.calls == ["/pub", "/pub/r1", "/pub/r2", "/pub/r3", "/pub/r3/nested"]
        assert {"/pub/r1/a.tar", "/pub/r2/b.tar", "/pub/r3/nested"} <= set(_paths(tree))

    @pytest.mark.parametrize("order", [["a", "b"], ["b", "a"]])
    def test_result_does_not_depend_on_listing_order(self, order: List[str]) -> None:
        listings = {
            "/root": [(name, D) for name in order],
            "/root/a": [("x", D), ("y", D)],
            "/root/b": [("f", F)],
        }

        tree = Walker(StubLister(listings)).walk("/root")

        assert set(_paths(tree)) == {
            "/root/a",
            "/root/b",
            "/root/a/x",
            "/root/a/y",
            "/root/b/f",
        }

    def test_branches_settle_depth_independently(self) -> None:
        lister = StubLister(
            {
                "/": [("a", D), ("b", D)],
                "/a": [("a1", D), ("a2", D)],
                "/a/a1": [("file", F)],
                "/b": [("b1", D)],
                "/b/b1": [("c", D)],
                "/b/b1/c": [("file", F)],
            }
        )

        Walker(lister).walk("/")

        assert lister.calls == ["/", "/a", "/a/a1", "/a/a2", "/b", "/b/b1", "/b/b1/c"]

    def test_listing_failure_does_not_stop_siblings(self) -> None:
        lister = StubLister(
            {
                "/root": [("a", D)],
                "/root/a": [("x", D), ("y", D)],
                "/root/a/y": [("z", D)],
            },
            failing=("/root/a/x",),
        )

        tree = Walker(lister).walk("/root")

        assert "/root/a/y" in lister.calls
        assert "/root/a/y/z" in lister.calls
        assert tree.unavailable == ["/root/a/x"]
        assert "/root/a/y/z" in _paths(tree)

    def test_unavailable_directory_is_indistinguishable_from_empty_in_entries(self) -> None:
        failing = StubLister({"/r": [("a", D)]}, failing=("/r/a",))
        empty = StubLister({"/r": [("a", D)], "/r/a": []})

        failed_tree = Walker(failing).walk("/r")
        empty_tree = Walker(empty).walk("/r")

        assert _paths(failed_tree) == _paths(empty_tree)
        assert failed_tree.unavailable == ["/r/a"]
        assert empty_tree.unavailable == []

    def test_root_failure_raises(self) -> None:
        lister = StubLister({}, failing=("/root",))

        with pytest.raises(ListingUnavailable) as exc_info:
            Walker(lister).walk("/root")

        assert exc_info.value.path == "/root"

    def test_self_and_parent_markers_are_skipped(self) -> None:
        lister = StubLister(
            {
                "/root": [(".", D), ("..", D), ("a", D)],
                "/root/a": [(".", D), ("..", D)],
            }
        )

        tree = Walker(lister).walk("/root")

        assert lister.calls == ["/root", "/root/a"]
        assert _paths(tree) == ["/root/a"]

    def test_empty_root(self) -> None:
        lister = StubLister({})

        tree = Walker(lister).walk("/empty")

        assert len(tree) == 0
        assert lister.calls == ["/empty"]

    def test_directory_only_tree_is_walked_to_exhaustion(self) -> None:
        lister = StubLister(
            {
                "/": [("l1", D)],
                "/l1": [("l2", D)],
                "/l1/l2": [("l3", D)],
                "/l1/l2/l3": [("l4", D)],
            }
        )

        tree = Walker(lister).walk("/")

        assert lister.calls == ["/", "/l1", "/l1/l2", "/l1/l2/l3", "/l1/l2/l3/l4"]
        assert [leaf.path for leaf in extract_leaves(tree)] == ["/l1/l2/l3/l4"]

    def test_other_entries_count_as_content(self) -> None:
        lister = StubLister(
            {
                "/r": [("a", D)],
                "/r/a": [("latest", EntryKind.OTHER), ("sub", D)],
            }
        )

        Walker(lister).walk("/r")

        assert lister.calls == ["/r", "/r/a"]

    def test_trailing_slash_root(self, mixed_tree: StubLister) -> None:
        tree = walk(mixed_tree, "/root/")

        assert tree.root == "/root"
        assert mixed_tree.calls[0] == "/root"

    def test_leaves_of_mixed_tree(self, mixed_tree: StubLister) -> None:
        tree = Walker(mixed_tree).walk("/root")

        leaves = {leaf.path for leaf in extract_leaves(tree)}

        assert leaves == {"/root/a/x", "/root/a/y", "/root/b"}


class TestHelpers:
    """Test path helpers."""

    @pytest.mark.parametrize(
        "root,expected", [("", "/"), ("/", "/"), ("/pub/", "/pub"), ("/pub//x", "/pub/x")]
    )
    def test_normalize_root(self, root: str, expected: str) -> None:
        assert normalize_root(root) == expected

"""Tests for the data model and structural equality."""

from blocksync.models import BlockPayload, ChildSyncStats, SyncStats, TreeNode, is_unchanged


class TestTreeNode:
    """Tests for TreeNode conversion."""

    def test_from_dict_defaults_missing_text(self):
        """Test a node without text gets an empty string."""
        node = TreeNode.from_dict({"uid": "abc"})

        assert node.text == ""
        assert node.children is None

    def test_from_dict_nested(self):
        """Test nested children are converted recursively."""
        node = TreeNode.from_dict({
            "uid": "p",
            "text": "parent",
            "children": [{"uid": "c", "text": "child", "children": [{"uid": "g"}]}],
        })

        assert node.children[0].uid == "c"
        assert node.children[0].children[0].text == ""

    def test_to_dict(self):
        """Test serialising a node."""
        node = TreeNode(text="t", uid="u", children=[TreeNode(text="c", uid="c1")])

        assert node.to_dict() == {
            "uid": "u",
            "text": "t",
            "children": [{"uid": "c1", "text": "c"}],
        }


class TestBlockPayload:
    """Tests for BlockPayload."""

    def test_to_dict_omits_missing_children(self):
        """Test children are only written when present."""
        assert BlockPayload(text="x").to_dict() == {"text": "x"}
        assert BlockPayload(text="x", children=[]).to_dict() == {"text": "x", "children": []}

    def test_from_dict(self):
        """Test building a payload from a mapping."""
        payload = BlockPayload.from_dict({"text": "a", "children": [{"text": "b"}]})

        assert payload == BlockPayload(text="a", children=[BlockPayload(text="b")])


class TestIsUnchanged:
    """Tests for structural comparison."""

    def test_equal_text_no_children(self):
        """Test identical text is unchanged."""
        assert is_unchanged(TreeNode(text="a", uid="1"), BlockPayload(text="a"))

    def test_different_text(self):
        """Test differing text is a change."""
        assert not is_unchanged(TreeNode(text="a", uid="1"), BlockPayload(text="b"))

    def test_extra_child_is_change(self):
        """Test a length mismatch is a change, not an error."""
        node = TreeNode(text="a", uid="1", children=[TreeNode(text="x", uid="2")])

        assert not is_unchanged(node, BlockPayload(text="a"))
        assert not is_unchanged(
            TreeNode(text="a", uid="1"), BlockPayload(text="a", children=[BlockPayload(text="x")])
        )

    def test_deep_difference(self):
        """Test a difference three levels down is detected."""
        node = TreeNode(text="a", uid="1", children=[
            TreeNode(text="b", uid="2", children=[TreeNode(text="c", uid="3")]),
        ])
        same = BlockPayload(text="a", children=[
            BlockPayload(text="b", children=[BlockPayload(text="c")]),
        ])
        different = BlockPayload(text="a", children=[
            BlockPayload(text="b", children=[BlockPayload(text="C")]),
        ])

        assert is_unchanged(node, same)
        assert not is_unchanged(node, different)

    def test_child_order_matters(self):
        """Test children are compared position by position."""
        node = TreeNode(text="a", uid="1", children=[
            TreeNode(text="x", uid="2"),
            TreeNode(text="y", uid="3"),
        ])
        swapped = BlockPayload(text="a", children=[BlockPayload(text="y"), BlockPayload(text="x")])

        assert not is_unchanged(node, swapped)


class TestStats:
    """Tests for the stats records."""

    def test_sync_stats_to_dict(self):
        """Test field names of SyncStats."""
        assert SyncStats(total=3, created=1).to_dict() == {
            "total": 3,
            "skipped": 0,
            "created": 1,
            "updated": 0,
            "deleted": 0,
        }

    def test_child_stats_has_no_total(self):
        """Test ChildSyncStats only carries the four counters."""
        assert set(ChildSyncStats().to_dict()) == {"skipped", "updated", "created", "deleted"}

"""
Version Widgets

Tree of versions and the details panel for the current version.
"""

from typing import List, Optional

from rich.text import Text
from textual.widgets import Static, Tree
from textual.widgets.tree import TreeNode

from sbvc import HistorySnapshot, Version
from sbvc_cli.formatting import version_details, version_label


class VersionTree(Tree[int]):
    """Version history rendered as a tree. Node data is the version id."""

    DEFAULT_CSS = """
    VersionTree {
        width: 1fr;
        border: round $primary-darken-2;
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs):
        super().__init__("No file selected", **kwargs)

    def load(self, snapshot: HistorySnapshot) -> None:
        """Rebuild the tree from a snapshot."""
        self.clear()
        self.root.set_label(str(snapshot.tracked_file))

        nodes: List[TreeNode[int]] = []
        for depth, version in snapshot.iter_tree():
            label = Text(version_label(version))
            if version.id == snapshot.current_id:
                label.stylize("bold green")
                label.append(" (current)")
                if snapshot.dirty:
                    label.append(" *", style="yellow")

            del nodes[depth:]
            parent = nodes[-1] if nodes else self.root
            nodes.append(parent.add(label, data=version.id, expand=True))

        self.root.expand()

    def version_count(self) -> int:
        count = 0
        stack = list(self.root.children)
        while stack:
            node = stack.pop()
            if node.data is not None:
                count += 1
            stack.extend(node.children)
        return count


class VersionInfo(Static):
    """Fields of the current version."""

    DEFAULT_CSS = """
    VersionInfo {
        height: auto;
        padding: 1;
        background: $surface-darken-1;
        margin-bottom: 1;
    }
    """

    def show_version(self, version: Optional[Version], dirty: bool = False) -> None:
        text = Text("Version info", style="bold")
        text.append("\n\n")
        if version is None:
            text.append("No version")
            self.update(text)
            return

        for field_name, value in version_details(version):
            text.append(f"{field_name}: ", style="bold")
            text.append(f"{value}\n")
        text.append("\n")
        if dirty:
            text.append("Uncommitted changes", style="yellow")
        else:
            text.append("Clean", style="green")
        self.update(text)

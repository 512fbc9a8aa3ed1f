"""
Formatting helpers shared by the command line and the TUI.
"""

from email.utils import formatdate
from typing import List, Tuple

from rich.text import Text
from rich.tree import Tree

from sbvc import HistorySnapshot, Version


def format_date(timestamp: float) -> str:
    """RFC 2822 date, e.g. ``Mon, 19 Oct 2026 10:00:00 GMT``."""
    return formatdate(timestamp, usegmt=True)


def version_label(version: Version) -> str:
    return f"{version.id}: {version.name}"


def version_details(version: Version) -> List[Tuple[str, str]]:
    """Field/value rows describing a version."""
    return [
        ("Version ID", str(version.id)),
        ("Version base", str(version.base)),
        ("Version name", version.name),
        ("Commit date", format_date(version.date)),
        ("Deletion count", str(len(version.difference.deletions))),
        ("Insertion count", str(len(version.difference.insertions))),
    ]


def build_rich_tree(snapshot: HistorySnapshot, show_dates: bool = True) -> Tree:
    """Render a snapshot's version tree, marking the current version."""
    nodes: List[Tree] = []
    tree: Tree = Tree(Text(str(snapshot.tracked_file), style="bold"))

    for depth, version in snapshot.iter_tree():
        label = Text(version_label(version))
        if version.id == snapshot.current_id:
            label.stylize("bold green")
            label.append(" (current)", style="green")
            if snapshot.dirty:
                label.append(" *modified*", style="yellow")
        if show_dates:
            label.append(f"  {format_date(version.date)}", style="dim")

        del nodes[depth:]
        parent = nodes[-1] if nodes else tree
        nodes.append(parent.add(label))

    return tree

"""
SBVC TUI Application

Textual front end over a version history. Every mutation is submitted to the
operation scheduler; results come back by polling its completion queue from
an interval timer, so the event loop never waits on disk or diff work.
"""

import logging
from typing import Dict, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Footer, Header, Static

from sbvc import (
    HistorySnapshot,
    OperationResult,
    OperationScheduler,
    UncommittedChangesError,
    VersionHistory,
)
from sbvc_cli.config import Config, get_config
from sbvc_cli.formatting import version_label
from sbvc_cli.widgets import ConfirmDialog, PromptDialog, VersionInfo, VersionTree

logger = logging.getLogger(__name__)

DISCARD_MESSAGE = "You have uncommitted changes in your file. Do you wish to discard them?"
DELETE_MESSAGE = (
    "Are you sure you want to delete the selected version? Your file content "
    "will be set to the one of the base of the deleted version"
)


class SbvcApp(App):
    """Interactive browser for one tracked file's history."""

    TITLE = "SBVC"

    CSS = """
    Screen {
        layout: vertical;
    }

    #paths {
        height: auto;
        padding: 0 1;
        background: $surface-darken-1;
    }

    #main {
        height: 1fr;
    }

    #side {
        width: 40;
        padding: 0 1;
    }

    #side Button {
        width: 100%;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        Binding("c", "commit", "Commit"),
        Binding("r", "rename", "Rename"),
        Binding("d", "delete", "Delete"),
        Binding("b", "rollback", "Rollback"),
        Binding("t", "track", "Change tracked file"),
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False),
    ]

    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        history: VersionHistory,
        config: Optional[Config] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.config = config or get_config()
        self.history = history
        self.scheduler = OperationScheduler(
            history,
            completion_slots=self.config.history.completion_slots,
            poll_interval=self.config.history.poll_interval,
        )
        self.snapshot: Optional[HistorySnapshot] = None
        self._checkouts: Dict[int, int] = {}

    def compose(self) -> ComposeResult:
        """Compose the application."""
        yield Header(show_clock=False)
        with Vertical(id="paths"):
            yield Static(id="store-label")
            yield Static(id="file-label")
        with Horizontal(id="main"):
            yield VersionTree(id="version-tree")
            with Vertical(id="side"):
                yield VersionInfo(id="version-info")
                yield Button("Commit", id="commit", variant="primary")
                yield Button("Rename", id="rename")
                yield Button("Delete", id="delete", variant="error")
                yield Button("Rollback", id="rollback")
        yield Footer()

    def on_mount(self) -> None:
        """Render the initial state and start polling for completions."""
        self.render_snapshot(self.history.snapshot())
        self.set_interval(self.config.history.poll_interval, self.poll_completions)
        self.query_one("#version-tree", VersionTree).focus()

    # --- Rendering ---

    def render_snapshot(self, snapshot: HistorySnapshot) -> None:
        """Rebuild the view from an immutable snapshot."""
        self.snapshot = snapshot
        self.query_one("#store-label", Static).update(f"Selected SBVC file: {snapshot.store_path}")
        self.query_one("#file-label", Static).update(f"Tracked file: {snapshot.tracked_file}")
        tree = self.query_one("#version-tree", VersionTree)
        tree.load(snapshot)
        count = tree.version_count()
        self.sub_title = f"{count} version" + ("" if count == 1 else "s")
        self.query_one("#version-info", VersionInfo).show_version(snapshot.current, snapshot.dirty)

    # --- Completion handling ---

    def poll_completions(self) -> None:
        """Timer callback: deliver finished operations without blocking."""
        for result in self.scheduler.drain():
            self.handle_result(result)

    def handle_result(self, result: OperationResult) -> None:
        target = self._checkouts.pop(result.op_id, None)
        if result.snapshot is not None:
            self.render_snapshot(result.snapshot)

        if result.ok:
            if result.name == "commit":
                self.notify(f"Current version: {version_label(result.value)}")
            return

        if isinstance(result.error, UncommittedChangesError) and target is not None:
            self.push_screen(
                ConfirmDialog("Rollback?", DISCARD_MESSAGE),
                callback=lambda discard: self._discard_answered(target, discard),
            )
            return

        self.notify(str(result.error), title=f"{result.name} failed", severity="error")

    def _discard_answered(self, target: int, discard: Optional[bool]) -> None:
        if discard:
            self.scheduler.submit("checkout", target, discard=True)

    # --- User actions ---

    def on_tree_node_selected(self, event: VersionTree.NodeSelected) -> None:
        """Check out the selected version."""
        if event.node.data is not None:
            self.request_checkout(event.node.data)

    def request_checkout(self, version_id: int) -> None:
        """Submit a checkout; uncommitted edits trigger a discard prompt."""
        handle = self.scheduler.submit("checkout", version_id, discard=False)
        self._checkouts[handle.op_id] = version_id

    def on_button_pressed(self, event: Button.Pressed) -> None:
        actions = {
            "commit": self.action_commit,
            "rename": self.action_rename,
            "delete": self.action_delete,
            "rollback": self.action_rollback,
        }
        action = actions.get(event.button.id or "")
        if action is not None:
            action()

    def action_commit(self) -> None:
        self.scheduler.submit("commit")

    def action_rollback(self) -> None:
        self.scheduler.submit("rollback")

    def action_rename(self) -> None:
        current = self.snapshot.current.name if self.snapshot else ""
        self.push_screen(
            PromptDialog("Choose a new name for the version", placeholder="New name", value=current),
            callback=self._rename_answered,
        )

    def _rename_answered(self, name: Optional[str]) -> None:
        if name is not None:
            self.scheduler.submit("rename", name)

    def action_delete(self) -> None:
        if not self.config.confirm_delete:
            self.scheduler.submit("delete")
            return
        self.push_screen(
            ConfirmDialog("Delete version", DELETE_MESSAGE),
            callback=self._delete_answered,
        )

    def _delete_answered(self, confirmed: Optional[bool]) -> None:
        if confirmed:
            self.scheduler.submit("delete")

    def action_track(self) -> None:
        self.push_screen(
            PromptDialog("Select file to be tracked", placeholder="Path"),
            callback=self._track_answered,
        )

    def _track_answered(self, path: Optional[str]) -> None:
        if path and path.strip():
            self.scheduler.submit("set_tracked_file", path.strip())

    async def action_quit(self) -> None:
        """Join any in-flight operation, then exit."""
        self.shutdown_scheduler()
        self.exit()

    def shutdown_scheduler(self) -> None:
        if not self.scheduler.closed:
            for result in self.scheduler.shutdown():
                if result.error is not None:
                    logger.warning("%s failed during shutdown: %s", result.name, result.error)

    def on_unmount(self) -> None:
        self.shutdown_scheduler()


def run_app(history: VersionHistory, config: Optional[Config] = None) -> None:
    """Run the SBVC TUI.

    Args:
        history: Open history to browse; closed when the app exits
        config: Application configuration
    """
    app = SbvcApp(history, config=config)
    app.run()


if __name__ == "__main__":
    import sys

    run_app(VersionHistory.open(sys.argv[1]))

"""
SBVC CLI Widgets

Textual widgets for the TUI interface.
"""

from sbvc_cli.widgets.dialogs import ConfirmDialog, PromptDialog
from sbvc_cli.widgets.versions import VersionInfo, VersionTree

__all__ = [
    "ConfirmDialog",
    "PromptDialog",
    "VersionInfo",
    "VersionTree",
]

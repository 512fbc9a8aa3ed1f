"""
SBVC CLI

Command line and terminal UI for sbvc version histories.
Built on Click and Textual.
"""

__version__ = "0.1.0"

from sbvc_cli.config import Config, get_config

__all__ = [
    "__version__",
    "Config",
    "get_config",
]

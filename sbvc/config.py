"""
SBVC Configuration

Engine-level settings shared by the store, the scheduler and front ends.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

GRANULARITIES = ("line", "char")
DEFAULT_STORE_EXTENSION = ".sbvc"


@dataclass
class HistoryConfig:
    """History engine configuration.

    Attributes:
        granularity: Token unit used by the diff codec for new stores
        completion_slots: Capacity of the scheduler's completion queue
        poll_interval: Seconds between front-end polls of the completion queue
        store_extension: Suffix used when deriving a store path from a file
    """

    granularity: str = "line"
    completion_slots: int = 8
    poll_interval: float = 0.05
    store_extension: str = DEFAULT_STORE_EXTENSION

    def __post_init__(self) -> None:
        if self.granularity not in GRANULARITIES:
            raise ValueError(
                f"granularity must be one of {', '.join(GRANULARITIES)}, got {self.granularity!r}"
            )
        if self.completion_slots < 1:
            raise ValueError("completion_slots must be at least 1")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "granularity": self.granularity,
            "completion_slots": self.completion_slots,
            "poll_interval": self.poll_interval,
            "store_extension": self.store_extension,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryConfig":
        """Create from dictionary."""
        return cls(
            granularity=data.get("granularity", "line"),
            completion_slots=data.get("completion_slots", 8),
            poll_interval=data.get("poll_interval", 0.05),
            store_extension=data.get("store_extension", DEFAULT_STORE_EXTENSION),
        )


def store_path_for(
    tracked_file: Union[str, Path],
    extension: str = DEFAULT_STORE_EXTENSION,
) -> Path:
    """Derive the default store path for a tracked file.

    ``notes.txt`` becomes ``notes.sbvc`` in the same directory.
    """
    return Path(tracked_file).with_suffix(extension)

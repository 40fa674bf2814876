"""relaymap: expiring message ID correspondence for chat bridges."""

from relaymap.core.constants import DISCORD_TO_TELEGRAM, TELEGRAM_TO_DISCORD, Direction
from relaymap.core.errors import (
    InvalidMappingError,
    RelayMapConfigurationError,
    RelayMapError,
    SnapshotWriteError,
)
from relaymap.message_map import MessageMap
from relaymap.timer import LongDelayTimer

__version__ = "0.1.0"

__all__ = [
    "DISCORD_TO_TELEGRAM",
    "TELEGRAM_TO_DISCORD",
    "Direction",
    "InvalidMappingError",
    "LongDelayTimer",
    "MessageMap",
    "RelayMapConfigurationError",
    "RelayMapError",
    "SnapshotWriteError",
    "__version__",
]

"""Direction tokens and snapshot constants."""

from __future__ import annotations

from typing import Literal

Direction = Literal["d2t", "t2d"]

DISCORD_TO_TELEGRAM: Direction = "d2t"
TELEGRAM_TO_DISCORD: Direction = "t2d"
DIRECTIONS: tuple[Direction, ...] = (DISCORD_TO_TELEGRAM, TELEGRAM_TO_DISCORD)

SNAPSHOT_FILENAME = "persistentMessageMap.db"

# Largest single-shot delay the scheduler accepts (signed 32-bit milliseconds)
MAX_DELAY_MS = 0x7FFFFFFF

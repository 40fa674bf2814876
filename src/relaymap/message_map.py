"""Expiring per-bridge map between relayed message IDs, for edit/delete propagation."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

from loguru import logger

from relaymap.config.schema import Config
from relaymap.core.constants import DIRECTIONS, DISCORD_TO_TELEGRAM, TELEGRAM_TO_DISCORD, Direction
from relaymap.core.errors import InvalidMappingError
from relaymap.durations import to_milliseconds
from relaymap.snapshot import Index, SnapshotStore, encode
from relaymap.timer import LongDelayTimer, Scheduler


class NamedBridge(Protocol):
    """Anything with a stable ``.name``, e.g. a configured bridge."""

    name: str


BridgeRef = str | NamedBridge


def _bridge_name(bridge: BridgeRef) -> str:
    return bridge if isinstance(bridge, str) else str(bridge.name)


def make_key(direction: str, from_id: str) -> str:
    """Entry key as stored in the index and the snapshot: ``"<direction> <from_id>"``."""
    return f"{direction} {from_id}"


def split_key(key: str) -> tuple[str, str]:
    """Split an entry key on its first space into (direction, origin ID)."""
    direction, _, origin_id = key.partition(" ")
    return direction, origin_id


class MessageMap:
    """Map IDs of received messages to IDs of the messages the bot relayed.

    Index layout: bridge name -> ``"<direction> <from_id>"`` -> set of to_ids.
    Each key is removed once, by a timer started when the key is created;
    inserting into a live key adds the ID without extending its life.
    With persistence on, every insert rewrites ``persistentMessageMap.db``.
    """

    DISCORD_TO_TELEGRAM: Direction = DISCORD_TO_TELEGRAM
    TELEGRAM_TO_DISCORD: Direction = TELEGRAM_TO_DISCORD

    def __init__(
        self,
        settings: Config | None = None,
        data_dir: str | Path | None = None,
        *,
        scheduler: Scheduler | None = None,
        timeout_amount: float | None = None,
        timeout_unit: str | None = None,
        persistent: bool | None = None,
    ) -> None:
        settings = settings if settings is not None else Config()
        amount = timeout_amount if timeout_amount is not None else settings.message_timeout_amount
        unit = timeout_unit if timeout_unit is not None else settings.message_timeout_unit
        self._timeout_ms = to_milliseconds(amount, unit)
        self._scheduler = scheduler
        self._map: Index = {}
        self._timers: dict[tuple[str, str], LongDelayTimer] = {}
        self._unarmed: list[tuple[str, str]] = []
        self._store: SnapshotStore | None = None

        if persistent is None:
            persistent = settings.persistent_message_map
        if persistent:
            self._open_store(SnapshotStore(data_dir if data_dir is not None else settings.data_dir))
        if self._unarmed:
            self.arm()

    def _open_store(self, store: SnapshotStore) -> None:
        try:
            store.ensure_exists()
        except OSError as exc:
            logger.warning("Message map persistence disabled; cannot open {}: {}", store.path, exc)
            return
        self._store = store
        self.restore(store.load())
        logger.info(
            "Loaded message map snapshot {}: {} bridges, {} keys",
            store.path,
            len(self._map),
            len(self),
        )

    def restore(self, index: Index) -> None:
        """Merge a decoded snapshot into the map.

        Keys not already present start unarmed and get a full timeout once a
        scheduler is available; IDs for live keys merge into their sets.
        """
        for bridge, entries in index.items():
            key_to_ids = self._map.setdefault(bridge, {})
            for key, ids in entries.items():
                if key in key_to_ids:
                    key_to_ids[key].update(ids)
                else:
                    key_to_ids[key] = set(ids)
                    self._unarmed.append((bridge, key))

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @property
    def persistent(self) -> bool:
        return self._store is not None

    def _resolve_scheduler(self) -> Scheduler | None:
        if self._scheduler is not None:
            return self._scheduler
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def arm(self) -> bool:
        """Start expiry timers for keys loaded from the snapshot.

        Returns False when no scheduler is available yet (no running loop);
        the next insert arms them instead.
        """
        scheduler = self._resolve_scheduler()
        if scheduler is None:
            return False
        pending, self._unarmed = self._unarmed, []
        for bridge, key in pending:
            key_to_ids = self._map.get(bridge)
            if key_to_ids is not None and key in key_to_ids and (bridge, key) not in self._timers:
                self._schedule_expiry(bridge, key_to_ids, key, scheduler)
        return True

    def _schedule_expiry(
        self, bridge: str, key_to_ids: dict[str, set[str]], key: str, scheduler: Scheduler
    ) -> None:
        timer_key = (bridge, key)

        def expire() -> None:
            self._timers.pop(timer_key, None)
            key_to_ids.pop(key, None)
            logger.debug("Message map entry expired: {} / {}", bridge, key)

        self._timers[timer_key] = LongDelayTimer(self._timeout_ms, expire, scheduler=scheduler)

    def insert(self, direction: Direction, bridge: BridgeRef, from_id: str, to_id: str) -> None:
        """Map ``from_id`` (message the bot received) to ``to_id`` (message the bot sent).

        Raises InvalidMappingError on an empty bridge name or ID and
        SnapshotWriteError when the write-through fails. An unknown direction
        is logged and ignored.
        """
        if direction not in DIRECTIONS:
            logger.error(
                "Unknown message map direction {!r}; not mapping {} -> {}", direction, from_id, to_id
            )
            return
        name = _bridge_name(bridge)
        from_id = "" if from_id is None else str(from_id)
        to_id = "" if to_id is None else str(to_id)
        if not name or not from_id or not to_id:
            raise InvalidMappingError(
                "Bridge name, from_id and to_id must be non-empty",
                code="empty_mapping_field",
                details={"bridge": name, "from_id": from_id, "to_id": to_id},
            )
        scheduler = self._resolve_scheduler()
        if scheduler is None:
            raise RuntimeError("MessageMap.insert needs a running event loop or an explicit scheduler")
        if self._unarmed:
            self.arm()

        key_to_ids = self._map.setdefault(name, {})
        key = make_key(direction, from_id)
        to_ids = key_to_ids.get(key)
        if to_ids is None:
            to_ids = key_to_ids[key] = set()
            self._schedule_expiry(name, key_to_ids, key, scheduler)
        to_ids.add(to_id)

        if self._store is not None:
            self._store.save(self._map)

    def get_corresponding(self, direction: Direction, bridge: BridgeRef, from_id: str) -> list[str]:
        """IDs of the messages the bot sent for ``from_id``; empty when unknown or expired."""
        try:
            key_to_ids = self._map.get(_bridge_name(bridge))
            if key_to_ids is None:
                return []
            return list(key_to_ids.get(make_key(direction, str(from_id)), ()))
        except Exception as exc:
            logger.opt(exception=exc).debug("Message map lookup failed for {}", from_id)
            return []

    def get_corresponding_reverse(
        self, bridge: BridgeRef, to_id: str, direction: Direction | None = None
    ) -> list[str]:
        """Origin ID whose relayed messages include ``to_id``, as a one-element list.

        Scans the bridge's keys in insertion order and returns the first match;
        ``direction`` limits the scan to keys of that direction.
        """
        try:
            key_to_ids = self._map.get(_bridge_name(bridge))
            if not key_to_ids:
                return []
            to_id = str(to_id)
            for key, ids in list(key_to_ids.items()):
                key_direction, origin_id = split_key(key)
                if direction is not None and key_direction != direction:
                    continue
                if to_id in ids:
                    return [origin_id]
            return []
        except Exception as exc:
            logger.opt(exception=exc).debug("Message map reverse lookup failed for {}", to_id)
            return []

    def bridges(self) -> list[str]:
        return list(self._map)

    def bridge_keys(self, bridge: BridgeRef) -> list[str]:
        """Live entry keys for a bridge."""
        return list(self._map.get(_bridge_name(bridge), ()))

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._map.values())

    def snapshot(self) -> str:
        """Index in snapshot file format."""
        return encode(self._map)

    def flush(self) -> None:
        """Rewrite the snapshot now. No-op without persistence."""
        if self._store is not None:
            self._store.save(self._map)

    def close(self) -> None:
        """Cancel pending expiry timers and flush.

        Entries stay readable. Their keys go back to the unarmed list, so the
        next ``arm()`` or insert starts a fresh full timeout for each of them.
        """
        for timer_key, timer in self._timers.items():
            timer.cancel()
            self._unarmed.append(timer_key)
        self._timers.clear()
        self.flush()

"""Bounded tile cache and its eviction policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Protocol, Sequence

from pyramidview.core.types import RequiredTiles, Tile, TileIndex

logger = logging.getLogger(__name__)

#: Draw depth of the lowest placeholder level; higher levels stack above it
PLACEHOLDER_BASE_DEPTH = -100.0

#: Opacity the renderer should use for placeholder tiles
PLACEHOLDER_ALPHA = 0.75


class LoadState(Enum):
    """Payload load status reported by the asset loader."""

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class AssetLoader(Protocol):
    """Asynchronous tile payload loader owned by the rendering side.

    ``load`` must return immediately with a handle; the payload arrives
    later and is observed through ``get_load_state``.
    """

    def load(self, url: str) -> Any: ...

    def get_load_state(self, handle: Any) -> LoadState: ...

    def release(self, handle: Any) -> None: ...


class TileState(Enum):
    REQUESTED = "requested"
    LOADED = "loaded"


@dataclass
class CacheEntry:
    """One cached tile.

    Attributes:
        tile: The tile, carrying the payload handle
        state: Whether the payload has arrived
        last_visible_secs: Last time the tile was on the active level
    """

    tile: Tile
    state: TileState = TileState.REQUESTED
    last_visible_secs: float = 0.0

    @property
    def handle(self) -> Any:
        return self.tile.handle

    @property
    def is_loaded(self) -> bool:
        return self.state is TileState.LOADED


@dataclass
class PollResult:
    """Outcome of one load-state poll."""

    changed: bool = False
    loading: int = 0


class TileCache:
    """Maps tile indices to requested or loaded tiles.

    The cache may exceed its budget between a tile update and the next
    prune pass, and also when too few tiles are evictable.
    """

    def __init__(self, max_items: int) -> None:
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")
        self._entries: dict[TileIndex, CacheEntry] = {}
        self._max_items = max_items
        self._requests = 0
        self._evictions = 0
        self._failures = 0

    @property
    def max_items(self) -> int:
        return self._max_items

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __iter__(self) -> Iterator[TileIndex]:
        return iter(list(self._entries))

    def get(self, index: TileIndex) -> CacheEntry | None:
        return self._entries.get(index)

    def is_over_budget(self) -> bool:
        return len(self._entries) > self._max_items

    def tiles(self) -> list[Tile]:
        """Cached tiles in draw order (placeholders first)."""
        return sorted(
            (entry.tile for entry in self._entries.values()),
            key=lambda tile: (tile.depth, tile.index.level),
        )

    def loaded_tiles(self) -> list[Tile]:
        return [tile for tile in self.tiles() if self._entries[tile.index].is_loaded]

    def reconcile(
        self,
        required: RequiredTiles,
        active_level: int,
        now: float,
        loader: AssetLoader,
        url_for: Callable[[Tile], str],
    ) -> bool:
        """Bring the cache in line with the tiles required for the viewport.

        Missing tiles are requested from the loader. Tiles on the active
        level are marked visible at ``now``; tiles on other levels become
        translucent placeholders.

        Args:
            required: Required tiles of the active level
            active_level: Level currently displayed
            now: Current time in seconds
            loader: Asset loader used for new requests
            url_for: Callable mapping a tile to its image request URL

        Returns:
            True if tiles from other levels are cached (prune should run)
        """
        for tile in required.tiles:
            if tile.index in self._entries:
                continue
            url = url_for(tile)
            logger.debug("Load %s for %s", url, tile.index)
            tile.handle = loader.load(url)
            self._entries[tile.index] = CacheEntry(tile)
            self._requests += 1

        other_levels = False
        for index, entry in self._entries.items():
            if index.level != active_level:
                entry.tile.placeholder = True
                entry.tile.depth = PLACEHOLDER_BASE_DEPTH + index.level
                entry.tile.alpha = PLACEHOLDER_ALPHA
                other_levels = True
            else:
                entry.tile.placeholder = False
                entry.tile.depth = 0.0
                entry.tile.alpha = 1.0
                entry.last_visible_secs = now

        return other_levels

    def poll_load_states(self, loader: AssetLoader) -> PollResult:
        """Poll pending payloads once per frame.

        Failed tiles are dropped so the next tile update requests them again.
        """
        result = PollResult()

        for index, entry in list(self._entries.items()):
            if entry.is_loaded:
                continue
            state = loader.get_load_state(entry.handle)
            if state is LoadState.LOADED:
                entry.state = TileState.LOADED
                result.changed = True
            elif state is LoadState.FAILED:
                logger.warning("Failed to load tile at %s. Retry...", index)
                self._drop(index, loader)
                self._failures += 1
                result.changed = True
            else:
                result.loading += 1

        return result

    def prune(
        self,
        protected: Sequence[RequiredTiles | None],
        loader: AssetLoader,
    ) -> list[TileIndex]:
        """Evict out-of-view tiles until the cache fits its budget.

        Args:
            protected: Required tiles for levels 0 up to the active level,
                indexed by level. A level beyond the end of the sequence is
                never protected; a ``None`` entry (viewport unknown) protects
                the whole level.
            loader: Asset loader owning the payload handles

        Returns:
            Indices of the evicted tiles
        """
        if len(self._entries) <= self._max_items:
            return []

        excess = len(self._entries) - self._max_items
        logger.debug("Pruning %d tiles, %d protected levels", excess, len(protected))

        evicted: list[TileIndex] = []
        loaded_candidates: list[tuple[TileIndex, CacheEntry]] = []

        for index, entry in list(self._entries.items()):
            if not self._is_out_of_view(index, protected):
                continue
            if entry.is_loaded:
                loaded_candidates.append((index, entry))
            else:
                logger.debug("Remove unloaded out-of-view tile from cache %s", index)
                self._drop(index, loader)
                evicted.append(index)
                excess = max(0, excess - 1)

        if excess > 0:
            loaded_candidates.sort(key=lambda item: item[1].last_visible_secs)
            for index, _entry in loaded_candidates[:excess]:
                logger.debug("Remove loaded out-of-view tile from cache %s", index)
                self._drop(index, loader)
                evicted.append(index)

        self._evictions += len(evicted)
        return evicted

    @staticmethod
    def _is_out_of_view(index: TileIndex, protected: Sequence[RequiredTiles | None]) -> bool:
        if index.level >= len(protected):
            return True
        required = protected[index.level]
        if required is None:
            return False
        return not required.covers(index)

    def _drop(self, index: TileIndex, loader: AssetLoader | None) -> None:
        entry = self._entries.pop(index)
        if loader is not None and entry.handle is not None:
            loader.release(entry.handle)

    def remove(self, index: TileIndex, loader: AssetLoader | None = None) -> None:
        """Forget a tile, releasing its payload if a loader is given."""
        if index in self._entries:
            self._drop(index, loader)

    def clear(self, loader: AssetLoader | None = None) -> None:
        """Drop every tile, e.g. when the tiled image goes away."""
        for index in list(self._entries):
            self._drop(index, loader)

    def get_cache_stats(self) -> dict:
        """Return cache counters for diagnostics."""
        loaded = sum(1 for entry in self._entries.values() if entry.is_loaded)
        return {
            "size": len(self._entries),
            "capacity": self._max_items,
            "loaded": loaded,
            "pending": len(self._entries) - loaded,
            "requests": self._requests,
            "evictions": self._evictions,
            "failures": self._failures,
        }

"""Leaderboard index — participants ordered by average DUMP held.

Indexed skip list keyed by (score, insertion sequence), with an
address → key map for O(1) membership and per-level spans for O(log N)
rank queries.

Complexity:
- Record (insert / update / remove): O(log N) expected
- Rank of an address: O(log N) expected
- Full ordered listing: O(N)

Invariants:
1. Entries are sorted ascending by score; equal scores keep the order
   in which their addresses first entered the board.
2. No entry has a zero score (recording zero removes the address).
3. Every address appears at most once.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator, Optional

from dumpglory.errors import ErrorKind, GameError

logger = logging.getLogger(__name__)

_Key = tuple[int, int]


class SplitMix64:
    """PRNG for skip list level selection.

    SplitMix64 + count-trailing-zeros gives an unbiased geometric(0.5)
    level distribution. Not a cryptographic source.
    """
    __slots__ = ["_state"]

    def __init__(self, seed: Optional[int] = None) -> None:
        if seed is None:
            seed = int(time.time_ns()) ^ id(self)
        self._state = seed if seed != 0 else 1

    def next(self) -> int:
        self._state = (self._state + 0x9E3779B97F4A7C15) & 0xFFFFFFFFFFFFFFFF
        z = self._state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & 0xFFFFFFFFFFFFFFFF
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & 0xFFFFFFFFFFFFFFFF
        return (z ^ (z >> 31)) & 0xFFFFFFFFFFFFFFFF

    def random_level(self, max_level: int) -> int:
        """Return a level in [0, max_level) with geometric(0.5) distribution."""
        r = self.next()
        if r == 0:
            r = 1
        level = 0
        while (r & 1) == 0 and level < max_level - 1:
            r >>= 1
            level += 1
        return level


class _Node:
    __slots__ = ["key", "address", "forward", "span"]

    def __init__(self, key: Optional[_Key], address: str, height: int) -> None:
        self.key = key
        self.address = address
        self.forward: list[Optional[_Node]] = [None] * height
        # span[i]: number of level-0 steps covered by forward[i]
        self.span: list[int] = [0] * height


class LeaderboardIndex:
    """Ascending order-statistics index over address → score.

    Thread-safety: this class is not thread-safe. The caller must
    synchronise access if used from multiple threads.
    """

    MAX_LEVEL = 32

    def __init__(self, seed: Optional[int] = None) -> None:
        self._head = _Node(None, "", self.MAX_LEVEL)
        self._level = 1
        self._length = 0
        self._keys: dict[str, _Key] = {}
        self._next_seq = 0
        self._rng = SplitMix64(seed)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def record_epoch_balance(self, address: str, score: int) -> None:
        """Insert, re-position or remove ``address``.

        - score > 0 and absent: insert
        - score > 0 and present: move to its new position, keeping the
          original insertion sequence for tie-breaking
        - score == 0: remove (no-op if absent)
        """
        if score < 0:
            raise GameError(ErrorKind.INVALID_AMOUNT, f"Score must be >= 0, got {score}")

        existing = self._keys.get(address)
        if existing is not None:
            if existing[0] == score:
                return
            self._delete(existing)
            del self._keys[address]
            if score > 0:
                key = (score, existing[1])
                self._insert(key, address)
                self._keys[address] = key
            return

        if score > 0:
            key = (score, self._next_seq)
            self._next_seq += 1
            self._insert(key, address)
            self._keys[address] = key

    def clear(self) -> None:
        """Drop every entry (used when a new epoch starts)."""
        self._head = _Node(None, "", self.MAX_LEVEL)
        self._level = 1
        self._length = 0
        self._keys.clear()
        self._next_seq = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_leaderboard(self, limit: Optional[int] = None) -> list[str]:
        """Return addresses ascending by score (optionally the first ``limit``)."""
        result: list[str] = []
        for node in self._iter_nodes():
            if limit is not None and len(result) >= limit:
                break
            result.append(node.address)
        return result

    def rank(self, address: str) -> int:
        """Return the 0-based position of ``address``, or -1 if absent."""
        key = self._keys.get(address)
        if key is None:
            return -1
        traversed = 0
        x = self._head
        for i in reversed(range(self._level)):
            nxt = x.forward[i]
            while nxt is not None and nxt.key <= key:
                traversed += x.span[i]
                x = nxt
                nxt = x.forward[i]
            if x is not self._head and x.key == key:
                return traversed - 1
        return -1

    def score(self, address: str) -> int:
        key = self._keys.get(address)
        return key[0] if key is not None else 0

    def items(self) -> list[tuple[str, int]]:
        """Return (address, score) pairs in board order."""
        return [(node.address, node.key[0]) for node in self._iter_nodes()]

    def __len__(self) -> int:
        return self._length

    def __contains__(self, address: object) -> bool:
        return address in self._keys

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize for persistence."""
        return {
            "entries": [
                [node.address, node.key[0], node.key[1]]
                for node in self._iter_nodes()
            ],
            "next_seq": self._next_seq,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], seed: Optional[int] = None) -> LeaderboardIndex:
        """Rebuild an index from ``to_dict`` output."""
        index = cls(seed=seed)
        for address, score, seq in data.get("entries", []):
            key = (score, seq)
            index._insert(key, address)
            index._keys[address] = key
        index._next_seq = data.get("next_seq", len(index._keys))
        return index

    # ------------------------------------------------------------------
    # Skip list internals
    # ------------------------------------------------------------------

    def _iter_nodes(self) -> Iterator[_Node]:
        x = self._head.forward[0]
        while x is not None:
            yield x
            x = x.forward[0]

    def _random_height(self) -> int:
        return 1 + self._rng.random_level(self.MAX_LEVEL)

    def _insert(self, key: _Key, address: str) -> None:
        update: list[_Node] = [self._head] * self.MAX_LEVEL
        rank = [0] * self.MAX_LEVEL

        x = self._head
        for i in reversed(range(self._level)):
            rank[i] = 0 if i == self._level - 1 else rank[i + 1]
            nxt = x.forward[i]
            while nxt is not None and nxt.key < key:
                rank[i] += x.span[i]
                x = nxt
                nxt = x.forward[i]
            update[i] = x

        height = self._random_height()
        if height > self._level:
            for i in range(self._level, height):
                rank[i] = 0
                update[i] = self._head
                self._head.span[i] = self._length
            self._level = height

        node = _Node(key, address, height)
        for i in range(height):
            node.forward[i] = update[i].forward[i]
            update[i].forward[i] = node
            node.span[i] = update[i].span[i] - (rank[0] - rank[i])
            update[i].span[i] = (rank[0] - rank[i]) + 1

        for i in range(height, self._level):
            update[i].span[i] += 1

        self._length += 1

    def _delete(self, key: _Key) -> None:
        update: list[_Node] = [self._head] * self.MAX_LEVEL
        x = self._head
        for i in reversed(range(self._level)):
            nxt = x.forward[i]
            while nxt is not None and nxt.key < key:
                x = nxt
                nxt = x.forward[i]
            update[i] = x

        target = x.forward[0]
        if target is None or target.key != key:
            logger.error("Leaderboard index out of sync: key %s not found", key)
            raise KeyError(key)

        for i in range(self._level):
            if update[i].forward[i] is target:
                update[i].span[i] += target.span[i] - 1
                update[i].forward[i] = target.forward[i]
            else:
                update[i].span[i] -= 1

        while self._level > 1 and self._head.forward[self._level - 1] is None:
            self._level -= 1
        self._length -= 1

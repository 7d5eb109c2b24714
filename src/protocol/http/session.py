from __future__ import annotations

import threading
import uuid
from typing import Dict, List, Optional

from ...engine.game import Game


class InMemorySessionStore:
    """Thread-safe in-memory game session store.

    Each session owns its own `Game` (and thus its own board); sessions never
    share board state.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}

    def create(self, game: Optional[Game] = None) -> str:
        """Store `game` (a fresh standard game by default) and return its id."""
        gid = str(uuid.uuid4())
        with self._lock:
            self._games[gid] = game if game is not None else Game.new()
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._games)

    def delete(self, game_id: str) -> bool:
        with self._lock:
            return self._games.pop(game_id, None) is not None

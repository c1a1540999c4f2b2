from __future__ import annotations

import logging
import random
from typing import Callable

from .models import Room

log = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 100


def generate_room_code(
    taken: Callable[[str], bool],
    length: int = 5,
    alphabet: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
    rng: random.Random | None = None,
) -> str:
    """Return a code of ``length`` characters for which ``taken(code)`` is false."""
    rng = rng or random.Random()
    for _ in range(MAX_CODE_ATTEMPTS):
        code = "".join(rng.choices(alphabet, k=length))
        if not taken(code):
            return code
    raise RuntimeError("Failed to generate a unique room code after multiple attempts.")


class RoomRegistry:
    """In-memory map of room code -> Room. Callers serialize access."""

    def __init__(
        self,
        code_length: int = 5,
        code_chars: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
        rng: random.Random | None = None,
    ) -> None:
        self._rooms: dict[str, Room] = {}
        self._code_length = code_length
        self._code_chars = code_chars
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return code in self._rooms

    def create(self, **room_kwargs) -> Room:
        code = generate_room_code(
            lambda c: c in self._rooms,
            length=self._code_length,
            alphabet=self._code_chars,
            rng=self._rng,
        )
        room = Room(code=code, **room_kwargs)
        self._rooms[code] = room
        log.info("[%s] Room created.", code)
        return room

    def get(self, code: str) -> Room | None:
        return self._rooms.get(code)

    def find_by_member(self, player_id: str) -> Room | None:
        # Linear scan; room counts stay small.
        for room in self._rooms.values():
            if player_id in room.players:
                return room
        return None

    def delete(self, code: str) -> bool:
        if code in self._rooms:
            del self._rooms[code]
            log.info("[%s] Room deleted.", code)
            return True
        return False

    def list(self) -> list[Room]:
        return list(self._rooms.values())

from __future__ import annotations

import logging
import random
from typing import Sequence

from .models import Player, Room

log = logging.getLogger(__name__)

RECOMMENDED_SOUND_PAIRS = 8


class SoundAssigner:
    """Hands out an (animal, unfound) sound pair to every player of a room.

    Sounds are drawn at random among those not yet used in the room. Once a
    pool runs dry, the player's number picks a fallback so the result stays
    deterministic: ``pool[(number - 1) % pairs]``.
    """

    def __init__(
        self,
        animal_sounds: Sequence[str],
        unfound_sounds: Sequence[str],
        rng: random.Random | None = None,
    ) -> None:
        self.animal_sounds = list(animal_sounds)
        self.unfound_sounds = list(unfound_sounds)
        self._rng = rng or random.Random()

        if len(self.animal_sounds) != len(self.unfound_sounds):
            log.warning(
                "Sound pools differ in size (animal=%d, unfound=%d); only %d pairs will be used.",
                len(self.animal_sounds),
                len(self.unfound_sounds),
                self.pair_count,
            )
        if self.pair_count == 0:
            log.error("No sound pairs configured; players will get no sounds.")
        elif self.pair_count < RECOMMENDED_SOUND_PAIRS:
            log.warning(
                "Only %d sound pairs configured; rooms above that size will share sounds.",
                self.pair_count,
            )

    @property
    def pair_count(self) -> int:
        return min(len(self.animal_sounds), len(self.unfound_sounds))

    def _pick(self, pool: list[str], used: set[str], number: int) -> str:
        pool = pool[: self.pair_count]
        available = [s for s in pool if s not in used]
        if available:
            return self._rng.choice(available)
        return pool[(number - 1) % self.pair_count]

    def assign(self, player: Player, room: Room) -> None:
        if self.pair_count == 0:
            log.error("[%s] No sound pairs available for P%d.", room.code, player.number)
            player.animal_sound = None
            player.unfound_sound = None
            return

        if len(room.assigned_animal_sounds) >= self.pair_count:
            log.warning("[%s] Ran out of unique animal sounds, P%d gets a fallback.", room.code, player.number)
        animal = self._pick(self.animal_sounds, room.assigned_animal_sounds, player.number)

        if len(room.assigned_unfound_sounds) >= self.pair_count:
            log.warning("[%s] Ran out of unique unfound sounds, P%d gets a fallback.", room.code, player.number)
        unfound = self._pick(self.unfound_sounds, room.assigned_unfound_sounds, player.number)

        room.assigned_animal_sounds.add(animal)
        room.assigned_unfound_sounds.add(unfound)
        player.animal_sound = animal
        player.unfound_sound = unfound

    def release(self, player: Player, room: Room) -> None:
        # Fallback sounds are shared, so only free what no one else still holds.
        others = [p for p in room.players.values() if p.id != player.id]
        room.assigned_animal_sounds = {p.animal_sound for p in others if p.animal_sound}
        room.assigned_unfound_sounds = {p.unfound_sound for p in others if p.unfound_sound}

    def reassign_all(self, room: Room) -> None:
        room.assigned_animal_sounds.clear()
        room.assigned_unfound_sounds.clear()
        for p in room.sorted_players():
            self.assign(p, room)

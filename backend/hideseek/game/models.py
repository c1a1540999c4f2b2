from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


GameState = Literal["Waiting", "Hiding", "Seeking", "GameOver"]
Role = Literal["Hider", "Seeker"]
Winner = Literal["Hider", "Seekers"]

WAITING: GameState = "Waiting"
HIDING: GameState = "Hiding"
SEEKING: GameState = "Seeking"
GAME_OVER: GameState = "GameOver"

HIDER: Role = "Hider"
SEEKER: Role = "Seeker"

HIDER_WINS: Winner = "Hider"
SEEKERS_WIN: Winner = "Seekers"


@dataclass
class Player:
    id: str
    number: int
    role: Role = SEEKER
    is_ready: bool = False
    is_found: bool = False
    sounds_played: int = 0
    animal_sound: str | None = None
    unfound_sound: str | None = None

    def reset_for_new_game(self) -> None:
        self.is_ready = False
        self.is_found = False
        self.sounds_played = 0

    def reset_for_seeking(self) -> None:
        self.is_ready = False
        self.sounds_played = 0


@dataclass
class Room:
    code: str
    state: GameState = WAITING
    seek_time_limit: int = 120
    sound_plays_per_player: int = 6
    seek_start_ms: int | None = None
    winner: Winner | None = None
    countdown_value: int = 0
    next_player_number: int = 1
    next_sound_index: int = 0
    unfound_queue: list[str] = field(default_factory=list)
    active_unfound_id: str | None = None
    assigned_animal_sounds: set[str] = field(default_factory=set)
    assigned_unfound_sounds: set[str] = field(default_factory=set)
    players: dict[str, Player] = field(default_factory=dict)
    # concern ("countdown", "deadline", "sounds") -> cancellation handle
    timers: dict[str, Any] = field(default_factory=dict, repr=False)

    def sorted_players(self) -> list[Player]:
        return sorted(self.players.values(), key=lambda p: p.number)

    def hider(self) -> Player | None:
        for p in self.players.values():
            if p.role == HIDER:
                return p
        return None

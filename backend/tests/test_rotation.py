from hideseek.game.models import SEEKING, WAITING, Player, Room
from hideseek.game.rotation import eligible_players, plan_next_sound


def seeking_room(players=3, limit=60, plays=2):
    room = Room(code="ABCDE", state=SEEKING, seek_time_limit=limit, sound_plays_per_player=plays, seek_start_ms=0)
    # inserted out of order on purpose
    for n in reversed(range(1, players + 1)):
        room.players[f"s{n}"] = Player(id=f"s{n}", number=n)
    return room


def test_eligible_players_sorted_and_filtered():
    room = seeking_room(4, plays=2)
    room.players["s2"].is_found = True
    room.players["s4"].sounds_played = 2

    assert [p.id for p in eligible_players(room)] == ["s1", "s3"]


def test_delay_spreads_remaining_plays_over_remaining_time():
    room = seeking_room(3, limit=60, plays=2)

    player, delay = plan_next_sound(room, now_ms=0, min_delay=1.0, idle_delay=1.5)

    assert player.id == "s1"
    assert delay == 10.0
    assert room.next_sound_index == 1


def test_delay_never_below_minimum():
    room = seeking_room(3, limit=60, plays=20)
    _, delay = plan_next_sound(room, now_ms=55_000, min_delay=1.0, idle_delay=1.5)
    assert delay == 1.0


def test_rotation_index_taken_over_eligible_set():
    room = seeking_room(3)
    plan_next_sound(room, now_ms=0, min_delay=1.0, idle_delay=1.5)
    room.players["s2"].is_found = True

    player, _ = plan_next_sound(room, now_ms=1000, min_delay=1.0, idle_delay=1.5)
    assert player.id == "s3"

    player, _ = plan_next_sound(room, now_ms=2000, min_delay=1.0, idle_delay=1.5)
    assert player.id == "s1"


def test_nobody_eligible_waits_idle_interval():
    room = seeking_room(2)
    for p in room.players.values():
        p.is_found = True

    assert plan_next_sound(room, now_ms=0, min_delay=1.0, idle_delay=1.5) == (None, 1.5)


def test_stops_when_time_is_up_or_phase_left():
    room = seeking_room(2, limit=60)
    assert plan_next_sound(room, now_ms=60_000, min_delay=1.0, idle_delay=1.5) == (None, None)

    room.state = WAITING
    assert plan_next_sound(room, now_ms=0, min_delay=1.0, idle_delay=1.5) == (None, None)

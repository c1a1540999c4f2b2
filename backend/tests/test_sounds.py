import logging
import random

from hideseek.game.models import Player, Room
from hideseek.game.sounds import SoundAssigner


def join(assigner, room, number):
    player = Player(id=f"s{number}", number=number)
    assigner.assign(player, room)
    room.players[player.id] = player
    return player


def test_sounds_are_unique_while_pool_lasts():
    assigner = SoundAssigner(["a1", "a2", "a3"], ["u1", "u2", "u3"], rng=random.Random(1))
    room = Room(code="ABCDE")
    players = [join(assigner, room, n) for n in (1, 2, 3)]

    assert sorted(p.animal_sound for p in players) == ["a1", "a2", "a3"]
    assert sorted(p.unfound_sound for p in players) == ["u1", "u2", "u3"]
    assert room.assigned_animal_sounds == {"a1", "a2", "a3"}


def test_exhausted_pool_falls_back_by_number():
    assigner = SoundAssigner(["a1", "a2"], ["u1", "u2"], rng=random.Random(3))
    room = Room(code="ABCDE")
    join(assigner, room, 1)
    join(assigner, room, 2)

    third = join(assigner, room, 3)
    fourth = join(assigner, room, 4)

    assert (third.animal_sound, third.unfound_sound) == ("a1", "u1")
    assert (fourth.animal_sound, fourth.unfound_sound) == ("a2", "u2")


def test_release_returns_sounds_to_the_pool():
    assigner = SoundAssigner(["a1", "a2"], ["u1", "u2"])
    room = Room(code="ABCDE")
    first = join(assigner, room, 1)
    second = join(assigner, room, 2)

    assigner.release(first, room)
    del room.players[first.id]

    assert room.assigned_animal_sounds == {second.animal_sound}
    newcomer = join(assigner, room, 3)
    assert newcomer.animal_sound == first.animal_sound
    assert newcomer.unfound_sound == first.unfound_sound


def test_reassign_all_starts_from_a_clean_pool():
    assigner = SoundAssigner(["a1", "a2", "a3"], ["u1", "u2", "u3"])
    room = Room(code="ABCDE")
    for n in (1, 2):
        join(assigner, room, n)
    room.assigned_animal_sounds.add("a3")

    assigner.reassign_all(room)

    animals = {p.animal_sound for p in room.players.values()}
    assert len(animals) == 2
    assert room.assigned_animal_sounds == animals


def test_mismatched_pools_warn_and_use_shorter(caplog):
    with caplog.at_level(logging.WARNING):
        assigner = SoundAssigner(["a1", "a2", "a3"], ["u1"])
    assert "differ in size" in caplog.text
    assert assigner.pair_count == 1

    room = Room(code="ABCDE")
    assert join(assigner, room, 1).animal_sound == "a1"
    assert join(assigner, room, 2).animal_sound == "a1"


def test_empty_pool_assigns_nothing():
    assigner = SoundAssigner([], [])
    room = Room(code="ABCDE")
    player = join(assigner, room, 1)
    assert player.animal_sound is None
    assert player.unfound_sound is None
    assert room.assigned_animal_sounds == set()


def leave(assigner, room, player):
    assigner.release(player, room)
    del room.players[player.id]


def test_release_keeps_fallback_sounds_held_by_others():
    for seed in range(50):
        assigner = SoundAssigner(["a", "b", "c"], ["x", "y", "z"], rng=random.Random(seed))
        room = Room(code="ABCDE")
        p1, p2, p3, p4 = (join(assigner, room, n) for n in (1, 2, 3, 4))

        leave(assigner, room, p1)
        leave(assigner, room, p2)
        p5 = join(assigner, room, 5)

        assert p5.animal_sound not in {p3.animal_sound, p4.animal_sound}, seed
        assert p5.unfound_sound not in {p3.unfound_sound, p4.unfound_sound}, seed
        assert room.assigned_animal_sounds == {p.animal_sound for p in room.players.values()}


def test_small_pool_warns_at_startup(caplog):
    with caplog.at_level(logging.WARNING):
        SoundAssigner(["a1", "a2"], ["u1", "u2"])
    assert "Only 2 sound pairs configured" in caplog.text


def test_full_pool_does_not_warn(caplog):
    pool = [f"s{i}" for i in range(8)]
    with caplog.at_level(logging.WARNING):
        SoundAssigner(pool, pool)
    assert caplog.text == ""

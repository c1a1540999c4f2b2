import os


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "")
    items = [s.strip() for s in raw.split(",") if s.strip()]
    return items or list(default)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO ("" picks eventlet or threading depending on platform)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Rooms
    ROOM_CODE_LENGTH = 5
    ROOM_CODE_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    MIN_PLAYERS_TO_START = int(os.environ.get("MIN_PLAYERS_TO_START", "2"))

    # Game settings (defaults and the range the Hider may pick from)
    SEEK_TIME_LIMIT_SEC = int(os.environ.get("SEEK_TIME_LIMIT_SEC", "120"))
    MIN_SEEK_TIME_LIMIT_SEC = 15
    MAX_SEEK_TIME_LIMIT_SEC = 600
    SOUND_PLAYS_PER_PLAYER = int(os.environ.get("SOUND_PLAYS_PER_PLAYER", "6"))
    MIN_SOUND_PLAYS = 1
    MAX_SOUND_PLAYS = 20

    # Timers
    PRE_SEEK_COUNTDOWN_SEC = int(os.environ.get("PRE_SEEK_COUNTDOWN_SEC", "10"))
    MIN_SOUND_DELAY_SEC = float(os.environ.get("MIN_SOUND_DELAY_SEC", "1.0"))
    IDLE_SOUND_CHECK_SEC = float(os.environ.get("IDLE_SOUND_CHECK_SEC", "1.5"))

    # Sound pools; both lists should have the same length.
    ANIMAL_SOUNDS = _env_list(
        "ANIMAL_SOUNDS",
        [
            "/sounds/cat.mp3",
            "/sounds/chicken.mp3",
            "/sounds/cow.mp3",
            "/sounds/dog.mp3",
            "/sounds/donkey.mp3",
            "/sounds/horse.mp3",
            "/sounds/sheep.mp3",
            "/sounds/bird.mp3",
        ],
    )
    UNFOUND_SOUNDS = _env_list(
        "UNFOUND_SOUNDS",
        [f"/sounds/unfound{i}.mp3" for i in range(1, 9)],
    )

class GameError(Exception):
    """Base for rejected player actions. The message is shown to the player."""


class ValidationError(GameError):
    """Bad settings, wrong actor or wrong phase for the requested action."""


class NotFoundError(GameError):
    """Unknown room code, or the connection is not a member of the room."""

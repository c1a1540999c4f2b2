# Inbound (client -> server)
CREATE_ROOM = "createRoom"
JOIN_ROOM = "joinRoom"
LEAVE_ROOM = "leaveRoom"
UPDATE_SETTINGS = "updateSettings"
START_HIDING = "startHiding"
CONFIRM_HIDDEN = "confirmHidden"
MARK_SELF_FOUND = "markSelfFound"
REQUEST_PLAY_AGAIN = "requestPlayAgain"

# Outbound (server -> client)
UPDATE_STATE = "updateState"
PRE_SEEK_COUNTDOWN = "preSeekCountdown"
PLAY_SOUND = "playSound"
BECOME_ACTIVE_UNFOUND = "becomeActiveUnfound"
PLAY_VICTORY_MELODY = "playVictoryMelody"
ERROR_MSG = "errorMsg"

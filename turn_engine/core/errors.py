from __future__ import annotations


class EngineError(Exception):
    pass


class ConfigurationError(EngineError):
    """Malformed game configuration: unknown references, bad weights, missing fields.

    Raised while a game is being built or loaded, never in the middle of a session.
    """


class InvalidActionError(EngineError):
    """An action id that the game does not define was submitted.

    The caller should re-prompt; the turn is not consumed.
    """

    def __init__(self, action_id: str):
        super().__init__(f"Unknown action: {action_id}")
        self.action_id = action_id


class GameNotFoundError(EngineError):
    pass


class SessionNotFoundError(EngineError):
    pass


class SessionBusyError(EngineError):
    pass

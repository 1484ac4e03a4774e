"""
Exception types raised by the Liuyao engine.

Invariant violations mean the static tables are wrong and are never
defaulted away. Input validation errors are raised before any stage runs.
"""


class LiuyaoError(Exception):
    """Base class for every engine error."""


class InvariantViolation(LiuyaoError):
    """Static data produced an impossible state."""


class UnknownHexagram(InvariantViolation):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No hexagram for binary key {key!r}")


class MissingWorldLine(InvariantViolation):
    def __init__(self):
        super().__init__("No line carries the self flag")


class MissingResponseLine(InvariantViolation):
    def __init__(self):
        super().__init__("No line carries the other flag")


class InputValidationError(LiuyaoError, ValueError):
    """Casting input rejected; `messages` lists every problem found."""

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class ReadingFailed(LiuyaoError):
    """Generic hard failure surfaced to callers of the orchestrator."""

    def __init__(self, message: str = "unable to complete reading"):
        super().__init__(message)


class ConfigError(LiuyaoError, ValueError):
    pass

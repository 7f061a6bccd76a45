"""Error kinds raised by the bonus engine.

Every error carries a stable ``kind`` string and a ``detail`` dict so that the
HTTP layer (or any other caller) can render a message without parsing text.
"""


class BonusError(Exception):
    kind = "BonusError"

    def __init__(self, message: str, **detail):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "detail": self.detail}


class UnknownBonusType(BonusError):
    kind = "UnknownBonusType"


class InsufficientStock(BonusError):
    kind = "InsufficientStock"


class AlreadyUsedThisRound(BonusError):
    kind = "AlreadyUsedThisRound"


class MissingDuelParameters(BonusError):
    kind = "MissingDuelParameters"


class MissingTarget(BonusError):
    kind = "MissingTarget"


class InvalidDayIndex(BonusError):
    kind = "InvalidDayIndex"


class BonusNotUsableNow(BonusError):
    kind = "BonusNotUsableNow"


class BonusValidationError(BonusError):
    """Bad administrative input (stock edits)."""

    kind = "ValidationError"


class NotFound(BonusError):
    kind = "NotFound"


class DuplicateUsage(BonusError):
    kind = "DuplicateUsage"


class Busy(BonusError):
    kind = "Busy"


class StorageUnavailable(BonusError):
    kind = "StorageUnavailable"

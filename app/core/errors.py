"""
Errores del motor de reglas.

Cada operación del núcleo lanza una subclase de ``RulesError`` etiquetada
con un ``ErrorKind``. Los servicios nunca construyen respuestas HTTP; el
handler registrado en ``main.py`` traduce el tipo a código de estado.
"""
import enum
from typing import Any, Optional


class ErrorKind(str, enum.Enum):
    INVALID_INPUT = "InvalidInput"
    INVALID_SELECTION = "InvalidSelection"
    DUPLICATE_DRIVER = "DuplicateDriver"
    ALREADY_USED_IN_CYCLE = "AlreadyUsedInCycle"
    SELECTION_LOCKED = "SelectionLocked"
    DECK_LOCKED = "DeckLocked"
    DEADLINE_PASSED = "DeadlinePassed"
    CARDS_UNAVAILABLE = "CardsUnavailable"
    INVALID_CARD = "InvalidCard"
    NOT_IN_DECK = "NotInDeck"
    ALREADY_USED_THIS_SEASON = "AlreadyUsedThisSeason"
    TARGET_REQUIRED = "TargetRequired"
    DECK_INVALID = "DeckInvalid"
    SLOT_MISMATCH = "SlotMismatch"
    TIER_LIMIT_EXCEEDED = "TierLimitExceeded"
    DUPLICATE_CARD = "DuplicateCard"
    NO_SWITCHEROOS_REMAINING = "NoSwitcheroosRemaining"
    SWITCHEROO_WINDOW_CLOSED = "SwitcherooWindowClosed"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"


class RulesError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_INPUT
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = {"detail": self.message, "error": self.kind.value}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(RulesError):
    kind = ErrorKind.INVALID_INPUT


class InvalidSelection(RulesError):
    kind = ErrorKind.INVALID_SELECTION


class DuplicateDriver(RulesError):
    kind = ErrorKind.DUPLICATE_DRIVER


class AlreadyUsedInCycle(RulesError):
    kind = ErrorKind.ALREADY_USED_IN_CYCLE


class SelectionLocked(RulesError):
    kind = ErrorKind.SELECTION_LOCKED


class DeckLocked(RulesError):
    kind = ErrorKind.DECK_LOCKED


class DeadlinePassed(RulesError):
    kind = ErrorKind.DEADLINE_PASSED


class CardsUnavailable(RulesError):
    kind = ErrorKind.CARDS_UNAVAILABLE


class InvalidCard(RulesError):
    kind = ErrorKind.INVALID_CARD


class NotInDeck(RulesError):
    kind = ErrorKind.NOT_IN_DECK


class AlreadyUsedThisSeason(RulesError):
    kind = ErrorKind.ALREADY_USED_THIS_SEASON


class TargetRequired(RulesError):
    kind = ErrorKind.TARGET_REQUIRED


class DeckInvalid(RulesError):
    """
    La composición del mazo no es válida. ``violations`` recoge TODAS las
    reglas incumplidas (dicts con ``kind`` y ``message``), no solo la primera.
    """
    kind = ErrorKind.DECK_INVALID

    def __init__(self, violations: list[dict[str, Any]]):
        self.violations = violations
        super().__init__(
            "; ".join(v["message"] for v in violations),
            {"violations": violations},
        )

    def kinds(self) -> set[str]:
        return {v["kind"] for v in self.violations}


class NoSwitcheroosRemaining(RulesError):
    kind = ErrorKind.NO_SWITCHEROOS_REMAINING


class SwitcherooWindowClosed(RulesError):
    kind = ErrorKind.SWITCHEROO_WINDOW_CLOSED


class Forbidden(RulesError):
    kind = ErrorKind.FORBIDDEN
    status_code = 403


class NotFound(RulesError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class Conflict(RulesError):
    """Otra petición escribió la misma fila a la vez; se puede reintentar."""
    kind = ErrorKind.CONFLICT
    status_code = 409

"""Exceptions raised by the bracket engine."""


class BracketError(Exception):
    """Base bracket engine error."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InsufficientItemsError(BracketError):
    """Raised when a bracket is built from fewer than two items."""


class DuplicateItemError(BracketError):
    """Raised when two items share an id."""


class InvalidWinnerError(BracketError):
    """Raised when the chosen winner is not in the current match."""


class AlreadyResolvedError(BracketError):
    """Raised when a resolved match is given a different winner."""

    status_code = 409


class MatchNotCurrentError(BracketError):
    """Raised when a pick targets a match that is not up for play."""

    status_code = 409


class TerminalStateError(BracketError):
    """Raised on any pick after the champion is decided."""

    status_code = 409


class IncompleteTournamentError(BracketError):
    """Raised when a result is requested before the final is played."""

    status_code = 409

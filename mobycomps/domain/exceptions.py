from mobycomps.core.utils.serialization import normalize_ctx


class AppError(Exception):
    def __init__(self, message: str = "", *, ctx: dict | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.ctx = normalize_ctx(ctx or {})


class NotFound(AppError):
    pass
class Unauthorized(AppError):
    pass
class Forbidden(AppError):
    pass
class Conflict(AppError):
    pass
class InvalidInput(AppError):
    pass
class Unprocessable(AppError):
    pass
class PaymentRequired(AppError):
    pass
class InternalError(AppError):
    pass


# Reservation / settlement taxonomy

class InvalidRange(InvalidInput):
    pass
class EmptySelection(InvalidInput):
    pass
class DuplicateSelection(InvalidInput):
    pass
class CompetitionNotLive(Conflict):
    pass
class NotHolder(Forbidden):
    pass
class Expired(Conflict):
    pass
class PaymentNotConfirmed(PaymentRequired):
    pass
class DuplicateSettlement(Conflict):
    pass


class AlreadyHeld(Conflict):
    """Contention outcome: carries the numbers the shopper has to drop from the selection."""

    def __init__(self, message: str = "", *, unavailable: list[int], ctx: dict | None = None) -> None:
        self.unavailable = sorted(unavailable)
        super().__init__(message, ctx={**(ctx or {}), "unavailable": self.unavailable})

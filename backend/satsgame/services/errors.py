"""Settlement failure kinds.

Every failure is terminal for the call that raised it. ``kind`` is the stable
identifier returned to API clients; ``message`` is the human-readable text.
"""
from datetime import datetime
from typing import Optional


class SettlementError(Exception):
    kind = "SettlementError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class InvalidAssetPair(SettlementError):
    kind = "InvalidAssetPair"


class InvalidAmount(SettlementError):
    kind = "InvalidAmount"


class PriceUnavailable(SettlementError):
    kind = "PriceUnavailable"
    status_code = 503

    def __init__(self, message: str, symbol: str):
        super().__init__(message)
        self.symbol = symbol

    def to_dict(self) -> dict:
        return {**super().to_dict(), "symbol": self.symbol}


class InsufficientBalance(SettlementError):
    kind = "InsufficientBalance"

    def __init__(self, message: str, held: int, requested: int):
        super().__init__(message)
        self.held = held
        self.requested = requested

    def to_dict(self) -> dict:
        return {**super().to_dict(), "held": self.held, "requested": self.requested}


class AssetLocked(SettlementError):
    kind = "AssetLocked"
    status_code = 409

    def __init__(self, message: str, available: int, locked: int, unlock_at: Optional[datetime]):
        super().__init__(message)
        self.available = available
        self.locked = locked
        self.unlock_at = unlock_at

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "available": self.available,
            "locked": self.locked,
            "unlock_at": self.unlock_at.isoformat() if self.unlock_at else None,
        }


class PersistenceFailure(SettlementError):
    kind = "PersistenceFailure"
    status_code = 500


class InvalidPortfolio(SettlementError):
    """A Set & Forget portfolio request with a bad name or allocation split."""
    kind = "InvalidPortfolio"

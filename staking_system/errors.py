# staking_system/errors.py
"""
Error codes and the exception raised by engine operations on invalid input.
"""
from typing import Optional


class ErrorCodes:
    # Account errors
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    REFERRER_NOT_FOUND = "REFERRER_NOT_FOUND"

    # Balance and stake errors
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    INVALID_CYCLE = "INVALID_CYCLE"
    STAKING_PAUSED = "STAKING_PAUSED"
    WITHDRAWALS_PAUSED = "WITHDRAWALS_PAUSED"

    # Rank errors
    RANK_NOT_FOUND = "RANK_NOT_FOUND"
    INVALID_RANK_CONFIG = "INVALID_RANK_CONFIG"

    # Points errors
    POINTS_DISABLED = "POINTS_DISABLED"

    # General errors
    INVALID_CONFIG = "INVALID_CONFIG"
    VALIDATION_ERROR = "VALIDATION_ERROR"


ErrorMessages = {
    ErrorCodes.ACCOUNT_NOT_FOUND: "Account not found.",
    ErrorCodes.REFERRER_NOT_FOUND: "Referrer account not found.",

    ErrorCodes.INSUFFICIENT_BALANCE: "Insufficient balance.",
    ErrorCodes.INVALID_AMOUNT: "Amount must be greater than 0.",
    ErrorCodes.BELOW_MINIMUM: "Amount is below the allowed minimum.",
    ErrorCodes.INVALID_CYCLE: "Invalid staking cycle.",
    ErrorCodes.STAKING_PAUSED: "Staking is currently paused.",
    ErrorCodes.WITHDRAWALS_PAUSED: "Withdrawals are currently paused.",

    ErrorCodes.RANK_NOT_FOUND: "Rank configuration not found.",
    ErrorCodes.INVALID_RANK_CONFIG: "Invalid rank configuration.",

    ErrorCodes.POINTS_DISABLED: "Points system is disabled.",

    ErrorCodes.INVALID_CONFIG: "Invalid configuration.",
    ErrorCodes.VALIDATION_ERROR: "Validation error.",
}


class StakingError(Exception):
    """Validation failure surfaced to the caller. Never retried."""

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or ErrorMessages.get(code, "An error occurred.")
        super().__init__(self.message)

    def toDict(self) -> dict:
        return {"success": False, "code": self.code, "error": self.message}

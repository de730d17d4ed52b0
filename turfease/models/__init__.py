"""Database models."""
from turfease.models.account import Account
from turfease.models.refresh_token import RefreshToken
from turfease.models.turf import Turf

__all__ = [
    "Account",
    "RefreshToken",
    "Turf",
]

from __future__ import annotations


class GameError(Exception):
    """Base for errors reported back to a single client as an error code."""

    def __init__(self, code: str, detail: str = "") -> None:
        super().__init__(detail or code)
        self.code = code
        self.detail = detail

    def to_dict(self) -> dict:
        payload = {"error": self.code}
        if self.detail:
            payload["message"] = self.detail
        return payload


class JoinError(GameError):
    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ON_COOLDOWN = "on_cooldown"
    BANNED = "banned"
    INVALID_CODE = "invalid_code"
    WALLET_ACTIVE = "wallet_active"
    INVALID_NAME = "invalid_name"


class ClaimError(GameError):
    NO_REWARD = "no_reward"
    ALREADY_CLAIMED = "already_claimed"
    INVALID_ADDRESS = "invalid_address"
    PAYOUT_FAILED = "payout_failed"

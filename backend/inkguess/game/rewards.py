from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Protocol

from .errors import ClaimError


logger = logging.getLogger(__name__)

SLOT_SHARES = (0.5, 0.3, 0.2)

# Solana public keys: base58, 32-44 characters.
ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_address(address: str | None) -> bool:
    return bool(address) and ADDRESS_RE.fullmatch(address) is not None


def distribute(pool: float, ranked: Iterable[tuple[int, str]]) -> dict[str, float]:
    """Split ``pool`` across rank slots 1-3; tied players split their slot's share."""
    by_rank: dict[int, list[str]] = {}
    for place, player_id in ranked:
        by_rank.setdefault(place, []).append(player_id)

    rewards: dict[str, float] = {}
    for place, ids in by_rank.items():
        share = SLOT_SHARES[place - 1] if 1 <= place <= len(SLOT_SHARES) else 0.0
        amount = round(pool * share / len(ids), 9) if pool > 0 else 0.0
        for pid in ids:
            rewards[pid] = amount
    return rewards


class PayoutExecutor(Protocol):
    def pay(self, address: str, amount: float, room_id: str) -> str: ...


class DisabledPayouts:
    """Payout collaborator used when no executor is configured."""

    def pay(self, address: str, amount: float, room_id: str) -> str:
        raise RuntimeError("payouts are not configured")


@dataclass
class Reward:
    player_id: str
    amount: float
    claimed: bool = False
    in_flight: bool = False
    tx_ref: str | None = None
    buyback: bool = False


class RewardLedger:
    """Rewards for one finished game, computed once from a frozen pool."""

    def __init__(self, room_id: str, pool: float, rewards: dict[str, float]) -> None:
        self.room_id = room_id
        self.pool = pool
        self._rewards = {pid: Reward(pid, amount) for pid, amount in rewards.items()}

    def amount(self, player_id: str) -> float:
        reward = self._rewards.get(player_id)
        return reward.amount if reward else 0.0

    def get(self, player_id: str) -> Reward | None:
        return self._rewards.get(player_id)

    def summary(self) -> dict[str, float]:
        return {pid: r.amount for pid, r in self._rewards.items()}

    def _claimable(self, player_id: str) -> Reward:
        reward = self._rewards.get(player_id)
        if reward is None or reward.amount <= 0:
            raise ClaimError("no_reward")
        if reward.claimed or reward.in_flight:
            raise ClaimError("already_claimed")
        return reward

    def begin_claim(self, player_id: str, address: str | None) -> Reward:
        reward = self._claimable(player_id)
        if not is_valid_address(address):
            raise ClaimError("invalid_address")
        reward.in_flight = True
        return reward

    def finish_claim(self, player_id: str, tx_ref: str) -> Reward:
        reward = self._rewards[player_id]
        reward.in_flight = False
        reward.claimed = True
        reward.tx_ref = tx_ref
        return reward

    def fail_claim(self, player_id: str) -> None:
        reward = self._rewards.get(player_id)
        if reward is not None:
            reward.in_flight = False

    def buyback(self, player_id: str) -> float:
        reward = self._claimable(player_id)
        reward.claimed = True
        reward.buyback = True
        return reward.amount


def execute_claim(ledger: RewardLedger, executor: PayoutExecutor, player_id: str, address: str) -> Reward:
    """Run the external payout for a claim started with ``begin_claim``.

    Must be called without holding the room lock; the executor may block.
    """
    reward = ledger.get(player_id)
    if reward is None or not reward.in_flight:
        raise ClaimError("no_reward")
    try:
        tx_ref = executor.pay(address, reward.amount, ledger.room_id)
    except Exception as exc:
        ledger.fail_claim(player_id)
        logger.warning("payout failed room=%s player=%s: %s", ledger.room_id, player_id, exc)
        raise ClaimError("payout_failed", str(exc)) from exc
    logger.info("payout sent room=%s player=%s amount=%s tx=%s", ledger.room_id, player_id, reward.amount, tx_ref)
    return ledger.finish_claim(player_id, tx_ref)

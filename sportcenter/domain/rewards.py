# sportcenter/domain/rewards.py
"""
Promotion reward and condition evaluation.

A promotion's JSON ``rewards`` blob is parsed into one closed variant
(FixedCredits, PercentageBonus, DiscountPercentage, DiscountFixed) and
``conditions`` into a PromotionConditions value. Both are pure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, FrozenSet, Mapping, Optional, Union

from sportcenter.core.enums import RewardType
from sportcenter.core.exceptions import MissingAmountException
from sportcenter.domain.schedule import parse_time

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Not a number: {value!r}") from exc


def round_credits(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FixedCredits:
    value: Decimal
    max_reward: Optional[Decimal] = None


@dataclass(frozen=True)
class PercentageBonus:
    value: Decimal
    max_reward: Optional[Decimal] = None


@dataclass(frozen=True)
class DiscountPercentage:
    value: Decimal
    max_reward: Optional[Decimal] = None


@dataclass(frozen=True)
class DiscountFixed:
    value: Decimal
    max_reward: Optional[Decimal] = None


RewardSpec = Union[FixedCredits, PercentageBonus, DiscountPercentage, DiscountFixed]

_VARIANTS = {
    RewardType.FIXED_CREDITS: FixedCredits,
    RewardType.PERCENTAGE_BONUS: PercentageBonus,
    RewardType.DISCOUNT_PERCENTAGE: DiscountPercentage,
    RewardType.DISCOUNT_FIXED: DiscountFixed,
}


def parse_rewards(raw: Optional[Mapping[str, Any]]) -> RewardSpec:
    """
    Parse ``{type, value, maxRewardAmount}``.

    Raises:
        ValueError: unknown type or a negative/missing value
    """
    if not isinstance(raw, Mapping):
        raise ValueError("rewards must be an object")
    try:
        reward_type = RewardType(raw.get("type"))
    except ValueError as exc:
        raise ValueError(f"Unknown reward type: {raw.get('type')!r}") from exc

    value = to_decimal(raw.get("value", 0))
    if value < 0:
        raise ValueError("Reward value cannot be negative")

    max_raw = raw.get("maxRewardAmount", raw.get("max_reward_amount"))
    max_reward = to_decimal(max_raw) if max_raw is not None else None
    if max_reward is not None and max_reward < 0:
        raise ValueError("maxRewardAmount cannot be negative")

    return _VARIANTS[reward_type](value=value, max_reward=max_reward)


def is_discount(spec: RewardSpec) -> bool:
    return isinstance(spec, (DiscountPercentage, DiscountFixed))


def compute_reward(spec: RewardSpec, amount: Optional[Decimal] = None) -> Decimal:
    """
    Reward for ``amount`` (credits awarded, or money taken off for discounts).

    Percentage variants need ``amount``. The result is clamped to the
    variant's maximum when one is set, then rounded to 2 decimal places.
    """
    if isinstance(spec, (FixedCredits, DiscountFixed)):
        reward = spec.value
    elif isinstance(spec, (PercentageBonus, DiscountPercentage)):
        if amount is None:
            raise MissingAmountException("An amount is required to compute a percentage reward")
        reward = to_decimal(amount) * spec.value / HUNDRED
    else:  # pragma: no cover - closed union
        raise TypeError(f"Unsupported reward spec: {spec!r}")

    if spec.max_reward is not None and reward > spec.max_reward:
        reward = spec.max_reward
    return round_credits(max(reward, Decimal("0")))


@dataclass(frozen=True)
class Quote:
    reward_amount: Decimal
    is_discount: bool
    final_amount: Decimal
    savings: Decimal
    bonus: Decimal


def quote_amount(spec: RewardSpec, amount: Decimal) -> Quote:
    """
    Price after a promotion: discounts lower the amount (never below zero),
    bonuses add credits on top of it.
    """
    amount = to_decimal(amount)
    reward = compute_reward(spec, amount)
    if is_discount(spec):
        final_amount = round_credits(max(Decimal("0"), amount - reward))
        return Quote(
            reward_amount=reward,
            is_discount=True,
            final_amount=final_amount,
            savings=round_credits(amount - final_amount),
            bonus=Decimal("0.00"),
        )
    return Quote(
        reward_amount=reward,
        is_discount=False,
        final_amount=round_credits(amount + reward),
        savings=Decimal("0.00"),
        bonus=reward,
    )


@dataclass(frozen=True)
class PromotionConditions:
    """
    Eligibility conditions. ``days_of_week`` uses 0=Sunday .. 6=Saturday.
    """

    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    days_of_week: Optional[FrozenSet[int]] = None
    time_start: Optional[time] = None
    time_end: Optional[time] = None

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "PromotionConditions":
        if not raw:
            return cls()
        min_amount = raw.get("minAmount", raw.get("min_amount"))
        max_amount = raw.get("maxAmount", raw.get("max_amount"))

        days_raw = raw.get("dayOfWeek", raw.get("day_of_week"))
        days: Optional[FrozenSet[int]] = None
        if isinstance(days_raw, int):
            days = frozenset({days_raw})
        elif isinstance(days_raw, (list, tuple, set, frozenset)) and days_raw:
            days = frozenset(int(d) for d in days_raw)

        window = raw.get("timeOfDay", raw.get("time_of_day")) or {}
        return cls(
            min_amount=to_decimal(min_amount) if min_amount is not None else None,
            max_amount=to_decimal(max_amount) if max_amount is not None else None,
            days_of_week=days,
            time_start=parse_time(window.get("start")) if isinstance(window, Mapping) else None,
            time_end=parse_time(window.get("end")) if isinstance(window, Mapping) else None,
        )

    def amount_matches(self, amount: Optional[Decimal]) -> bool:
        if amount is None:
            return self.min_amount is None and self.max_amount is None
        if self.min_amount is not None and amount < self.min_amount:
            return False
        if self.max_amount is not None and amount > self.max_amount:
            return False
        return True

    def moment_matches(self, local_moment: datetime) -> bool:
        """Check day-of-week and time-of-day against a local datetime."""
        if self.days_of_week is not None:
            sunday_based = (local_moment.weekday() + 1) % 7
            if sunday_based not in self.days_of_week:
                return False
        if self.time_start is not None and self.time_end is not None:
            current = local_moment.time().replace(second=0, microsecond=0)
            if not (self.time_start <= current <= self.time_end):
                return False
        return True

    def matches(self, amount: Optional[Decimal], local_moment: Optional[datetime] = None) -> bool:
        if not self.amount_matches(amount):
            return False
        if local_moment is not None and not self.moment_matches(local_moment):
            return False
        return True

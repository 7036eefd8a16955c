# sportcenter/domain/conflicts.py
"""
Sport-priority conflict resolution for a single court.

Rules for a requested slot, checked in order:

- Overlapping an active maintenance window: MAINTENANCE for every sport.
- Overlapping a reservation of the court's primary sport: taken, even for
  another primary-sport request.
- A primary-sport request overlapping any reservation: taken.
- A secondary-sport request overlapping only secondary reservations (or
  nothing): available.

A start before ``now`` is PAST regardless of the rules above. Everything here
is a pure function of its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from sportcenter.core.enums import SlotStatus
from sportcenter.core.timezone_utils import ensure_utc
from sportcenter.domain.slots import CandidateSlot

if TYPE_CHECKING:
    from sportcenter.models.center import Court

logger = logging.getLogger(__name__)


class SportRole(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


def normalize_sport(sport: str) -> str:
    return sport.strip().casefold()


@dataclass(frozen=True)
class CourtSports:
    """
    The sports a court can host.

    ``secondary`` is empty for single-use courts. The primary sport is never
    a secondary sport.
    """

    primary: str
    secondary: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        secondary_keys = {normalize_sport(s) for s in self.secondary}
        if normalize_sport(self.primary) in secondary_keys:
            raise ValueError(f"Primary sport {self.primary!r} cannot also be a secondary sport")

    @classmethod
    def from_court(cls, court: "Court") -> "CourtSports":
        if not court.is_multiuse:
            return cls(primary=court.primary_sport)
        primary_key = normalize_sport(court.primary_sport)
        secondary = []
        for sport in court.allowed_sports or []:
            if normalize_sport(sport) == primary_key:
                logger.warning(
                    "Court %s lists its primary sport %r as secondary; ignoring it",
                    court.id,
                    sport,
                )
                continue
            secondary.append(sport)
        return cls(primary=court.primary_sport, secondary=frozenset(secondary))

    def classify(self, sport: str) -> Optional[SportRole]:
        """Role of ``sport`` on this court, or None when the court cannot host it."""
        key = normalize_sport(sport)
        if key == normalize_sport(self.primary):
            return SportRole.PRIMARY
        if key in {normalize_sport(s) for s in self.secondary}:
            return SportRole.SECONDARY
        return None

    def role_of_existing(self, sport: str) -> SportRole:
        # A stored sport the court no longer lists is treated as exclusive
        return self.classify(sport) or SportRole.PRIMARY

    def canonical(self, sport: str) -> Optional[str]:
        """The court's own spelling of ``sport``."""
        key = normalize_sport(sport)
        for candidate in (self.primary, *sorted(self.secondary)):
            if normalize_sport(candidate) == key:
                return candidate
        return None


@dataclass(frozen=True)
class Occupancy:
    """An existing reservation that holds the court."""

    start: datetime
    end: datetime
    sport: str
    reservation_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class Blackout:
    """An active maintenance window."""

    start: datetime
    end: datetime
    maintenance_id: Optional[str] = None


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap: touching intervals do not overlap."""
    return ensure_utc(a_start) < ensure_utc(b_end) and ensure_utc(b_start) < ensure_utc(a_end)


class ConflictReason(str, Enum):
    MAINTENANCE = "maintenance"
    PRIMARY_OCCUPIED = "primary_occupied"
    PRIMARY_NEEDS_EXCLUSIVE = "primary_needs_exclusive"
    SPORT_NOT_ALLOWED = "sport_not_allowed"


@dataclass(frozen=True)
class ConflictCheck:
    """Outcome of checking one time range; ``reason`` is None when free."""

    reason: Optional[ConflictReason] = None
    blocking: Tuple[Occupancy, ...] = ()
    maintenance: Tuple[Blackout, ...] = ()

    @property
    def ok(self) -> bool:
        return self.reason is None


def check_range(
    start: datetime,
    end: datetime,
    requested_sport: str,
    sports: CourtSports,
    reservations: Iterable[Occupancy],
    maintenance: Iterable[Blackout] = (),
) -> ConflictCheck:
    """Apply the sport-priority rules to one requested time range."""
    requested_role = sports.classify(requested_sport)
    if requested_role is None:
        return ConflictCheck(reason=ConflictReason.SPORT_NOT_ALLOWED)

    blocked_by_maintenance = tuple(m for m in maintenance if overlaps(start, end, m.start, m.end))
    if blocked_by_maintenance:
        return ConflictCheck(reason=ConflictReason.MAINTENANCE, maintenance=blocked_by_maintenance)

    overlapping = tuple(r for r in reservations if overlaps(start, end, r.start, r.end))
    primary_holders = tuple(
        r for r in overlapping if sports.role_of_existing(r.sport) == SportRole.PRIMARY
    )
    if primary_holders:
        return ConflictCheck(reason=ConflictReason.PRIMARY_OCCUPIED, blocking=primary_holders)
    if requested_role == SportRole.PRIMARY and overlapping:
        return ConflictCheck(reason=ConflictReason.PRIMARY_NEEDS_EXCLUSIVE, blocking=overlapping)
    return ConflictCheck()


_MESSAGES: Dict[SlotStatus, str] = {
    SlotStatus.AVAILABLE: "Available",
    SlotStatus.BOOKED: "Already booked",
    SlotStatus.USER_BOOKED: "You already have a reservation at this time",
    SlotStatus.MAINTENANCE: "Court under maintenance",
    SlotStatus.PAST: "This time has already passed",
    SlotStatus.UNAVAILABLE: "Not available",
}


def conflict_message(reason: ConflictReason) -> str:
    if reason == ConflictReason.MAINTENANCE:
        return "The court is under maintenance during this time"
    if reason == ConflictReason.PRIMARY_OCCUPIED:
        return "The court is reserved for its primary sport during this time"
    if reason == ConflictReason.PRIMARY_NEEDS_EXCLUSIVE:
        return "The primary sport needs the whole court and it is already shared during this time"
    return "This sport cannot be played on this court"


@dataclass(frozen=True)
class SlotAvailability:
    start: datetime
    end: datetime
    status: SlotStatus
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "status": self.status.value,
            "message": self.message,
        }


def resolve_slots(
    slots: Iterable[CandidateSlot],
    requested_sport: str,
    sports: CourtSports,
    reservations: Sequence[Occupancy],
    maintenance: Sequence[Blackout] = (),
    *,
    user_id: Optional[str] = None,
    court_active: bool = True,
) -> List[SlotAvailability]:
    """
    Mark every candidate slot with its availability status.

    Deterministic for identical inputs: the slot order is preserved and
    reservations are only read.
    """
    results: List[SlotAvailability] = []
    for slot in slots:
        status = _slot_status(slot, requested_sport, sports, reservations, maintenance, user_id, court_active)
        results.append(SlotAvailability(slot.start, slot.end, status, _MESSAGES[status]))
    return results


def _slot_status(
    slot: CandidateSlot,
    requested_sport: str,
    sports: CourtSports,
    reservations: Sequence[Occupancy],
    maintenance: Sequence[Blackout],
    user_id: Optional[str],
    court_active: bool,
) -> SlotStatus:
    if slot.is_past:
        return SlotStatus.PAST
    if not court_active:
        return SlotStatus.UNAVAILABLE

    check = check_range(slot.start, slot.end, requested_sport, sports, reservations, maintenance)
    if check.ok:
        return SlotStatus.AVAILABLE
    if check.reason == ConflictReason.MAINTENANCE:
        return SlotStatus.MAINTENANCE
    if check.reason == ConflictReason.SPORT_NOT_ALLOWED:
        return SlotStatus.UNAVAILABLE
    if user_id is not None and any(r.user_id == user_id for r in check.blocking):
        return SlotStatus.USER_BOOKED
    return SlotStatus.BOOKED


def summarize(results: Iterable[SlotAvailability]) -> Dict[str, int]:
    """Count slots per status; every status appears, zero included."""
    counts = {status.value: 0 for status in SlotStatus}
    for result in results:
        counts[result.status.value] += 1
    return counts

"""Plan definitions — tier and duration rules of a membership product."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from dateutil.relativedelta import relativedelta

DEFAULT_TIER = "standard"


class DurationUnit(str, Enum):
    """Calendar unit a plan duration is expressed in."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


def normalize_duration(duration: int | None) -> int:
    """Floor a configured duration to at least one unit."""
    if duration is None or duration <= 0:
        return 1
    return int(duration)


def calculate_expiration(
    start: datetime, duration: int | None, unit: DurationUnit | str = DurationUnit.DAYS
) -> datetime:
    """Return ``start`` plus ``duration`` units.

    Months and years are calendar arithmetic: a start on the 31st lands on the
    last day of a shorter target month rather than spilling into the next.
    """
    unit = DurationUnit(unit)
    amount = normalize_duration(duration)
    delta = relativedelta(**{unit.value: amount})
    return start + delta


@dataclass(frozen=True)
class Plan:
    """A purchasable membership definition from the storefront catalog."""

    plan_id: int
    tier: str = DEFAULT_TIER
    duration: int = 1
    duration_unit: DurationUnit = DurationUnit.DAYS
    name: str | None = None

    def __post_init__(self) -> None:
        # Coerce loosely-typed catalog metadata
        object.__setattr__(self, "duration_unit", DurationUnit(self.duration_unit or DurationUnit.DAYS))
        object.__setattr__(self, "duration", normalize_duration(self.duration))
        object.__setattr__(self, "tier", (self.tier or "").strip() or DEFAULT_TIER)

    @property
    def display_name(self) -> str:
        return self.name or f"Membership #{self.plan_id}"

    def expiration_from(self, start: datetime) -> datetime:
        """Expiry of a grant of this plan starting at ``start``."""
        return calculate_expiration(start, self.duration, self.duration_unit)

"""
Value types shared by the location hierarchy tiers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AdministrativeLevel(str, Enum):
    STATE = "state"
    LGA = "lga"
    WARD = "ward"
    POLLING_UNIT = "polling_unit"

    @property
    def child(self) -> Optional["AdministrativeLevel"]:
        order = list(AdministrativeLevel)
        idx = order.index(self)
        return order[idx + 1] if idx + 1 < len(order) else None

    @property
    def parent(self) -> Optional["AdministrativeLevel"]:
        order = list(AdministrativeLevel)
        idx = order.index(self)
        return order[idx - 1] if idx > 0 else None


class UnitSource(str, Enum):
    REMOTE = "remote"
    BUNDLED = "bundled"
    SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class AdministrativeUnit:
    id: str
    display_name: str
    level: AdministrativeLevel
    parent_id: Optional[str] = None
    code: Optional[str] = None
    source: UnitSource = UnitSource.BUNDLED

    @property
    def synthetic(self) -> bool:
        return self.source is UnitSource.SYNTHETIC

    def to_dict(self) -> dict:
        """Wire shape used by the /api/locations routes and consumed by the remote tier."""
        return {
            "id": self.id,
            "name": self.display_name,
            "code": self.code,
            "parentId": self.parent_id,
            "level": self.level.value,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class LocationPath:
    """
    Foreign-key tuple linking a farm record to the hierarchy.

    Fields are ordered state -> lga -> ward -> polling unit; a set field implies
    every field before it is set.
    """

    state_id: Optional[str] = None
    lga_id: Optional[str] = None
    ward_id: Optional[str] = None
    polling_unit_id: Optional[str] = None

    def as_tuple(self) -> tuple:
        return (self.state_id, self.lga_id, self.ward_id, self.polling_unit_id)

    def has_gaps(self) -> bool:
        seen_empty = False
        for value in self.as_tuple():
            if not value:
                seen_empty = True
            elif seen_empty:
                return True
        return False

    @property
    def is_complete(self) -> bool:
        return not self.has_gaps() and all(self.as_tuple()[:3])

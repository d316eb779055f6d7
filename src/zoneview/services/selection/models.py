"""Selection domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ...models.domain import Bounds, Zone
from ..keys import unique_normalized


@dataclass(frozen=True, slots=True)
class SelectionSet:
    """Ordered, de-duplicated canonical keys the operator asked to see.

    ``day_scopes`` restricts a key to zones of the listed days; keys without an
    entry match zones of every day.
    """

    keys: tuple[str, ...] = ()
    day_scopes: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def from_keys(cls, raw_keys: Iterable[str]) -> "SelectionSet":
        return cls(keys=tuple(unique_normalized(raw_keys)))

    @property
    def is_empty(self) -> bool:
        return not self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def days_for(self, key: str) -> Optional[frozenset[str]]:
        return self.day_scopes.get(key)

    def matches(self, zone: Zone) -> bool:
        if zone.key not in self.keys:
            return False
        days = self.day_scopes.get(zone.key)
        return days is None or zone.day in days


@dataclass(frozen=True, slots=True)
class VisibilityDecision:
    zone: Zone
    visible: bool
    is_selected: bool

    def __post_init__(self) -> None:
        if self.is_selected and not self.visible:
            raise ValueError(f"Zone {self.zone.key} cannot be selected while hidden.")


@dataclass(frozen=True, slots=True)
class SelectionResult:
    """Outcome of one resolve: per-zone decisions plus the externally reported keys."""

    decisions: tuple[VisibilityDecision, ...]
    active_keys: tuple[str, ...]
    bounds: Optional[Bounds]
    unmatched_keys: tuple[str, ...] = ()
    overridden_keys: tuple[str, ...] = ()
    fallback: bool = False

    @property
    def visible(self) -> dict[str, bool]:
        flags: dict[str, bool] = {}
        for decision in self.decisions:
            flags[decision.zone.key] = flags.get(decision.zone.key, False) or decision.visible
        return flags

    @property
    def visible_zones(self) -> list[Zone]:
        return [decision.zone for decision in self.decisions if decision.visible]

    @property
    def selected_zones(self) -> list[Zone]:
        return [decision.zone for decision in self.decisions if decision.is_selected]

    @property
    def selected_count(self) -> int:
        return sum(1 for decision in self.decisions if decision.is_selected)

    def unmatched_ratio(self, requested: int) -> float:
        if requested <= 0:
            return 0.0
        return len(self.unmatched_keys) / requested

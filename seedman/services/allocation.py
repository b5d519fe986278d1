"""
Allocation advisor — suggests the best free slot for an incoming lot.

Scoring is a weighted sum of three components, each in [0, 1]:

    fit          mass / available capacity (tighter fit scores higher)
    adjacency    1 / distance to the closest slot holding the same seed type
    environment  1 suitable chamber, 0.5 unknown, 0 unsuitable

The scoring functions are pure and operate on SlotSnapshot values so
they can be tested without a database.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from seedman.conf import seedman_settings
from seedman.exceptions import LotError
from seedman.mass import total_mass
from seedman.models.enums import ACTIVE_LOT_STATUSES
from seedman.models.slot import Slot
from seedman.services.results import AllocationSuggestion
from seedman.services.slots import SlotRegistry

logger = logging.getLogger('seedman')


@dataclass(frozen=True)
class SlotSnapshot:
    """Read-only view of a candidate slot."""

    slot_id: int
    code: str
    chamber_id: int
    block: int
    side: str
    row: int
    level: int
    max_capacity: Decimal
    current_load: Decimal
    suitable: bool | None = None

    @classmethod
    def from_slot(cls, slot: Slot, suitable: bool | None = None) -> 'SlotSnapshot':
        return cls(
            slot_id=slot.pk,
            code=slot.code,
            chamber_id=slot.chamber_id,
            block=slot.block,
            side=slot.side,
            row=slot.row,
            level=slot.level,
            max_capacity=slot.max_capacity,
            current_load=slot.current_load,
            suitable=suitable,
        )

    @property
    def available(self) -> Decimal:
        return self.max_capacity - self.current_load

    def distance_to(self, other: 'SlotSnapshot') -> int:
        return (
            abs(self.block - other.block)
            + abs(ord(self.side) - ord(other.side))
            + abs(self.row - other.row)
            + abs(self.level - other.level)
        )


def fit_score(mass: Decimal, available: Decimal) -> float | None:
    """mass / available, or None when the mass does not fit."""
    if available <= 0 or mass > available:
        return None
    return float(mass / available)


def adjacency_score(candidate: SlotSnapshot, neighbours, radius: int) -> float:
    distances = [
        candidate.distance_to(n) for n in neighbours
        if n.chamber_id == candidate.chamber_id and n.slot_id != candidate.slot_id
    ]
    distances = [d for d in distances if 0 < d <= radius]
    if not distances:
        return 0.0
    return 1.0 / min(distances)


def environment_score(suitable: bool | None) -> float:
    if suitable is None:
        return 0.5
    return 1.0 if suitable else 0.0


def rank_slots(candidates, mass: Decimal, neighbours=(), weights=None,
               radius: int = 1) -> list[tuple[SlotSnapshot, float, dict[str, float]]]:
    """
    Score candidates and return (snapshot, score, breakdown) best first.

    Candidates the mass does not fit into are dropped. Ties are broken
    by lower level, then code.
    """
    weights = weights or {'fit': 0.5, 'adjacency': 0.3, 'environment': 0.2}
    ranked = []
    for snap in candidates:
        fit = fit_score(mass, snap.available)
        if fit is None:
            continue
        breakdown = {
            'fit': fit,
            'adjacency': adjacency_score(snap, neighbours, radius),
            'environment': environment_score(snap.suitable),
        }
        score = sum(weights.get(k, 0) * v for k, v in breakdown.items())
        ranked.append((snap, score, breakdown))

    ranked.sort(key=lambda item: (-item[1], item[0].level, item[0].code))
    return ranked


class AllocationAdvisor:
    """Slot suggestion for lots that need a place to go."""

    @classmethod
    def find_optimal_slot(cls, quantity, unit_mass, seed_type=None, chamber=None,
                          exclude=(), alternatives: int = 3) -> AllocationSuggestion:
        """
        Best free slot for quantity × unit_mass kg.

        Does not lock anything: the caller re-checks the slot under lock
        before using it.

        Raises:
            LotError('NO_SLOT_AVAILABLE'): No free slot fits the mass
        """
        mass = total_mass(quantity, unit_mass)
        slots = list(
            SlotRegistry.available_slots(mass, chamber).exclude(pk__in=list(exclude))
        )

        suitability: dict[int, bool | None] = {}
        snapshots = []
        for slot in slots:
            if slot.chamber_id not in suitability:
                suitability[slot.chamber_id] = (
                    seed_type.suits(
                        slot.chamber,
                        temperature_tolerance=seedman_settings.TEMPERATURE_TOLERANCE,
                        humidity_tolerance=seedman_settings.HUMIDITY_TOLERANCE,
                    )
                    if seed_type is not None else None
                )
            snapshots.append(SlotSnapshot.from_slot(slot, suitability[slot.chamber_id]))

        neighbours = []
        if seed_type is not None and snapshots:
            same_type = Slot.objects.filter(
                lots__seed_type=seed_type,
                lots__status__in=ACTIVE_LOT_STATUSES,
                chamber_id__in={s.chamber_id for s in snapshots},
            ).distinct()
            neighbours = [SlotSnapshot.from_slot(s) for s in same_type]

        ranked = rank_slots(
            snapshots,
            mass,
            neighbours=neighbours,
            weights=seedman_settings.ALLOCATION_WEIGHTS,
            radius=seedman_settings.ADJACENCY_RADIUS,
        )

        if not ranked:
            logger.info(
                "allocation.none",
                extra={"mass": str(mass), "chamber_id": getattr(chamber, 'pk', None)},
            )
            raise LotError('NO_SLOT_AVAILABLE', requested=mass)

        by_pk = {s.pk: s for s in slots}
        best, score, breakdown = ranked[0]
        suggestion = AllocationSuggestion(
            slot=by_pk[best.slot_id],
            score=score,
            breakdown=breakdown,
            alternatives=tuple(
                (by_pk[snap.slot_id], sc) for snap, sc, _ in ranked[1:1 + alternatives]
            ),
        )
        logger.info(
            "allocation.selected",
            extra={
                "slot_id": best.slot_id,
                "slot_code": best.code,
                "score": round(score, 4),
                "mass": str(mass),
            },
        )
        return suggestion

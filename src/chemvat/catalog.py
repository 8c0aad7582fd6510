"""Reagent registry with stable integer handles."""

from __future__ import annotations

from typing import Iterator

from chemvat.models import EMPTY, Reagent, ReagentProperties, ReagentState


class ReagentCatalog:
    """Maps reagent ids to immutable :class:`Reagent` records.

    Handle ``0`` is always the ``empty`` sentinel. Lookups of unknown ids
    return the sentinel instead of failing so that stale persisted ids
    degrade gracefully.
    """

    def __init__(self) -> None:
        self._by_handle: list[Reagent] = [EMPTY]
        self._by_id: dict[str, Reagent] = {EMPTY.id: EMPTY}

    def register(
        self,
        reagent_id: str,
        properties: ReagentProperties,
        fixed_state: ReagentState | None = None,
    ) -> Reagent:
        if reagent_id in self._by_id:
            raise ValueError(f"Duplicate reagent id: {reagent_id}")
        reagent = Reagent(len(self._by_handle), reagent_id, properties, fixed_state)
        self._by_handle.append(reagent)
        self._by_id[reagent_id] = reagent
        return reagent

    def lookup(self, reagent_id: str) -> Reagent:
        return self._by_id.get(reagent_id, EMPTY)

    def get(self, handle: int) -> Reagent:
        if 0 <= handle < len(self._by_handle):
            return self._by_handle[handle]
        return EMPTY

    def id_of(self, reagent: Reagent) -> str:
        return self.get(reagent.handle).id

    def __contains__(self, reagent_id: object) -> bool:
        return reagent_id in self._by_id and reagent_id != EMPTY.id

    def __iter__(self) -> Iterator[Reagent]:
        return iter(self._by_handle[1:])

    def __len__(self) -> int:
        return len(self._by_handle) - 1


def default_catalog() -> ReagentCatalog:
    """Build a catalog holding the stock reagents."""
    catalog = ReagentCatalog()
    for reagent_id, melting, boiling, heat_capacity in (
        ("oxygen", -218.8, -182.9, 29.37),
        ("hydrogen", -259.2, -252.8, 28.84),
        ("water", 0.0, 100.0, 75.38),
        ("nitrogen", -209.8, -195.7, 29.12),
        ("sulfur", 115.2, 444.6, 22.75),
        ("sulfur_dioxide", -72.0, 10.0, 42.5),
        ("sulfur_trioxide", 16.9, 45.0, 61.5),
        ("sulfuric_acid", 10.3, 337.0, 135.8),
        ("redstone", 325.0, 452.0, 53.4),
        ("redstone_sulfate", 236.0, 352.0, 174.2),
        # Redstone sulfate dissolved in water keeps the solvent transitions.
        ("redstone_sulfate_in_water", 0.0, 100.0, 174.2 + 75.38),
    ):
        catalog.register(
            reagent_id,
            ReagentProperties(
                melting_point=melting,
                boiling_point=boiling,
                heat_capacity=heat_capacity,
            ),
        )
    return catalog

"""Data structures for reagents and reagent quantities."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from chemvat.constants import ABSOLUTE_ZERO, DEFAULT_TEMPERATURE


class ReagentState(str, enum.Enum):
    SOLID = "solid"
    LIQUID = "liquid"
    GAS = "gas"


@dataclass(frozen=True)
class ReagentProperties:
    melting_point: float = ABSOLUTE_ZERO  # C
    boiling_point: float = ABSOLUTE_ZERO  # C
    heat_capacity: float = 1.0  # J/mol/K

    def state_at(self, temperature: float) -> ReagentState:
        if temperature >= self.boiling_point:
            return ReagentState.GAS
        if temperature >= self.melting_point:
            return ReagentState.LIQUID
        return ReagentState.SOLID


@dataclass(frozen=True)
class Reagent:
    """A registered chemical kind.

    Reagents compare and hash by their catalog handle only, so mixtures
    keyed by reagent are keyed by handle.
    """

    handle: int
    id: str = field(compare=False)
    properties: ReagentProperties = field(compare=False, default=ReagentProperties())
    fixed_state: ReagentState | None = field(compare=False, default=None)

    @property
    def melting_point(self) -> float:
        return self.properties.melting_point

    @property
    def boiling_point(self) -> float:
        return self.properties.boiling_point

    @property
    def heat_capacity(self) -> float:
        return self.properties.heat_capacity

    def state_at(self, temperature: float) -> ReagentState:
        if self.fixed_state is not None:
            return self.fixed_state
        return self.properties.state_at(temperature)

    def __str__(self) -> str:
        return self.id


EMPTY = Reagent(0, "empty")


@dataclass(frozen=True)
class ReagentQuantity:
    """An amount (moles * 1000) of one reagent at a temperature (C)."""

    reagent: Reagent
    amount: int
    temperature: float = DEFAULT_TEMPERATURE

    @property
    def is_empty(self) -> bool:
        return self.amount <= 0

    @property
    def effective_reagent(self) -> Reagent:
        return EMPTY if self.is_empty else self.reagent

    @property
    def state(self) -> ReagentState:
        return self.reagent.state_at(self.temperature)

    def with_amount(self, amount: int) -> ReagentQuantity:
        return ReagentQuantity(self.reagent, amount, self.temperature)

    def is_of(self, reagent: Reagent) -> bool:
        return self.reagent == reagent

    def __str__(self) -> str:
        return f"{self.amount} {self.reagent}(T={self.temperature})"


@dataclass(frozen=True)
class ReagentIngredient:
    reagent: Reagent
    amount: int

    def matches(self, quantity: ReagentQuantity) -> bool:
        return quantity.is_of(self.reagent) and quantity.amount >= self.amount

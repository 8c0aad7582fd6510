"""Base interface for the state that reaction conditions read."""

from __future__ import annotations

from abc import ABC, abstractmethod

from chemvat.models import Reagent, ReagentState


class MixtureConditions(ABC):
    """Read-only view of a mixture as seen by rate equations and conditions."""

    @property
    @abstractmethod
    def temperature(self) -> float:
        """Mixture temperature (C)."""

    @property
    @abstractmethod
    def heat_mass(self) -> float:
        """Mixture heat capacity (J/K)."""

    @property
    @abstractmethod
    def catalyzer(self) -> float:
        """Catalyzer strength applied to the mixture."""

    @abstractmethod
    def concentration(self, reagent: Reagent, state: ReagentState | None = None) -> float:
        """Fraction of ``reagent`` in the mixture, in [0, 1].

        With ``state`` given, the fraction is taken among the reagents
        currently in that state and is 0 if ``reagent`` is not in it.
        """

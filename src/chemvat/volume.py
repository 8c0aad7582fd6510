"""Mixtures bound to a container volume."""

from __future__ import annotations

from chemvat.constants import OPEN_HEADSPACE
from chemvat.mixture import ReagentMixture
from chemvat.models import ReagentQuantity, ReagentState
from chemvat.thermo import static_pressure
from chemvat.transaction import Transaction


class VolumeMixture(ReagentMixture):
    """Mixture whose solids and liquids occupy a fixed container volume.

    Solids and liquids take one volume unit per amount unit; gases fill
    whatever headspace is left. Gas is accepted in full as long as the
    container is not completely filled (or is open to the outside), other
    states only up to the free volume.
    """

    def __init__(self, volume: int, is_open: bool = False) -> None:
        self._volume = volume
        self._is_open = is_open
        self._solid_amount = 0
        self._liquid_amount = 0
        self._gas_amount = 0
        super().__init__()

    @property
    def volume(self) -> int:
        return self._volume

    @property
    def is_open(self) -> bool:
        return self._is_open

    @is_open.setter
    def is_open(self, is_open: bool) -> None:
        self._is_open = is_open

    @property
    def solid_amount(self) -> int:
        return self._solid_amount

    @property
    def liquid_amount(self) -> int:
        return self._liquid_amount

    @property
    def gas_amount(self) -> int:
        return self._gas_amount

    @property
    def used_volume(self) -> int:
        return self._solid_amount + self._liquid_amount

    @property
    def free_volume(self) -> int:
        return self._volume - self.used_volume

    @property
    def fill_level(self) -> float:
        if self._volume <= 0:
            return 0.0
        return self.used_volume / self._volume

    @property
    def solid_level(self) -> float:
        if self._volume <= 0:
            return 0.0
        return self._solid_amount / self._volume

    @property
    def headspace(self) -> int:
        """Volume available to gas, including the outside air when open."""
        headspace = max(self.free_volume, 0)
        if self._is_open:
            headspace += OPEN_HEADSPACE
        return headspace

    @property
    def static_pressure(self) -> float:
        return static_pressure(self._gas_amount, self.absolute_temperature, self.headspace)

    def state_amount(self, state: ReagentState) -> int:
        if state is ReagentState.SOLID:
            return self._solid_amount
        if state is ReagentState.LIQUID:
            return self._liquid_amount
        return self._gas_amount

    def accepts(self, quantity: ReagentQuantity) -> int:
        if quantity.amount <= 0:
            return 0
        if self.state(quantity.reagent) is ReagentState.GAS:
            if self.used_volume < self._volume or self._is_open:
                return quantity.amount
            return 0
        return max(0, min(quantity.amount, self.free_volume))

    def force_add(self, quantity: ReagentQuantity, transaction: Transaction | None = None) -> int:
        """Add all of ``quantity`` regardless of free volume."""
        if quantity.is_empty:
            return 0
        self._begin_mutation(transaction)
        return self._add_internal(quantity.reagent, quantity.amount, quantity.temperature)

    def force_add_mixture(
        self, mixture: ReagentMixture, transaction: Transaction | None = None
    ) -> int:
        temperature = mixture.precise_temperature
        return sum(
            self.force_add(ReagentQuantity(reagent, amount, temperature), transaction)
            for reagent, amount in mixture.items()
        )

    def _contents_changed(self) -> None:
        solid = liquid = gas = 0
        temperature = self.temperature
        for reagent, amount in self._reagents.items():
            state = reagent.state_at(temperature)
            if state is ReagentState.SOLID:
                solid += amount
            elif state is ReagentState.LIQUID:
                liquid += amount
            else:
                gas += amount
        self._solid_amount = solid
        self._liquid_amount = liquid
        self._gas_amount = gas

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["volume"] = self._volume
        data["open"] = self._is_open
        return data

    def __repr__(self) -> str:
        return (
            f"VolumeMixture(volume={self._volume}, used={self.used_volume}, "
            f"gas={self._gas_amount}, T={self.temperature})"
        )

"""Storage views exposing one reagent of a mixture in foreign units.

Views never touch mixture internals: every change goes through
:meth:`ReagentMixture.add` / :meth:`ReagentMixture.remove` inside a
transaction nested in the caller's.
"""

from __future__ import annotations

import math

from chemvat.constants import BLOCK_MOLE_AMOUNT, DEFAULT_TEMPERATURE, FLUID_MOLE_RATIO
from chemvat.mixture import ReagentMixture
from chemvat.models import Reagent, ReagentQuantity
from chemvat.transaction import Transaction


class FluidView:
    """Fluid storage view; ``mole_ratio`` fluid units per amount unit."""

    def __init__(
        self,
        mixture: ReagentMixture,
        reagent: Reagent,
        mole_ratio: float = FLUID_MOLE_RATIO,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self.mixture = mixture
        self.reagent = reagent
        self.mole_ratio = mole_ratio
        self.temperature = temperature

    @property
    def stored(self) -> int:
        return int(self.mixture.amount(self.reagent) * self.mole_ratio)

    @property
    def capacity(self) -> int:
        return int(self.mixture.volume * self.mole_ratio)

    def insert(self, reagent: Reagent, amount: int, transaction: Transaction) -> int:
        if reagent != self.reagent or amount <= 0:
            return 0
        moles = math.floor(amount / self.mole_ratio)
        if moles <= 0:
            return 0
        with transaction.open_nested() as nested:
            added = self.mixture.add(ReagentQuantity(reagent, moles, self.temperature), nested)
            nested.commit()
        return min(amount, int(added * self.mole_ratio))

    def extract(self, reagent: Reagent, amount: int, transaction: Transaction) -> int:
        if reagent != self.reagent or amount <= 0:
            return 0
        moles = math.ceil(amount / self.mole_ratio)
        with transaction.open_nested() as nested:
            removed = self.mixture.remove(reagent, moles, nested)
            nested.commit()
        return min(amount, int(removed.amount * self.mole_ratio))


class ItemView:
    """Item storage view; one item is ``item_amount`` amount units.

    Only whole items are moved.
    """

    def __init__(
        self,
        mixture: ReagentMixture,
        reagent: Reagent,
        item_amount: int = BLOCK_MOLE_AMOUNT,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        if item_amount <= 0:
            raise ValueError("item_amount must be positive")
        self.mixture = mixture
        self.reagent = reagent
        self.item_amount = item_amount
        self.temperature = temperature

    @property
    def stored(self) -> int:
        return self.mixture.amount(self.reagent) // self.item_amount

    def insert(self, reagent: Reagent, count: int, transaction: Transaction) -> int:
        if reagent != self.reagent or count <= 0:
            return 0
        with transaction.open_nested() as trial:
            accepted = self.mixture.add(self._quantity(count), trial)
            trial.abort()
        whole = accepted // self.item_amount
        if whole <= 0:
            return 0
        with transaction.open_nested() as nested:
            self.mixture.add(self._quantity(whole), nested)
            nested.commit()
        return whole

    def extract(self, reagent: Reagent, count: int, transaction: Transaction) -> int:
        if reagent != self.reagent or count <= 0:
            return 0
        whole = min(count, self.stored)
        if whole <= 0:
            return 0
        with transaction.open_nested() as nested:
            self.mixture.remove(reagent, whole * self.item_amount, nested)
            nested.commit()
        return whole

    def _quantity(self, count: int) -> ReagentQuantity:
        return ReagentQuantity(self.reagent, count * self.item_amount, self.temperature)

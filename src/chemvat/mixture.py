"""Reagent mixtures with energy bookkeeping.

A mixture tracks integer amounts per reagent together with its total
thermal energy and heat mass. Temperature is derived from the two::

    energy    += (T + 273.15) * amount * 0.001 * heat_capacity
    heat_mass += amount * 0.001 * heat_capacity
    T          = energy / heat_mass - 273.15

Every mutating method takes an optional :class:`~chemvat.transaction.Transaction`.
With a transaction the previous state is snapshotted before the first
change so it can be rolled back; without one the change is applied
directly and the mixture is marked altered.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Collection, Iterable, Mapping

from chemvat.catalog import ReagentCatalog
from chemvat.constants import AMOUNT_SCALE, CELSIUS_OFFSET, DEFAULT_TEMPERATURE
from chemvat.models import EMPTY, Reagent, ReagentIngredient, ReagentQuantity, ReagentState
from chemvat.progress import ProgressStore
from chemvat.reactions import ElectrolysisRule, ReactionFlag, ReactionRule
from chemvat.thermo import MixtureConditions
from chemvat.transaction import SnapshotParticipant, Transaction

logger = logging.getLogger(__name__)

UNBOUNDED_VOLUME = 2**31 - 1


def stack_heat_mass(reagent: Reagent, amount: int) -> float:
    return amount * AMOUNT_SCALE * reagent.heat_capacity


def stack_energy(reagent: Reagent, amount: int, temperature: float) -> float:
    return (temperature + CELSIUS_OFFSET) * stack_heat_mass(reagent, amount)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class MixtureSnapshot:
    reagents: dict[Reagent, int]
    total_amount: int
    heat_mass: float
    energy: float


class ReagentMixture(SnapshotParticipant, MixtureConditions):
    """Unbounded multiset of reagents sharing one temperature."""

    def __init__(self) -> None:
        self._reagents: dict[Reagent, int] = {}
        self._total_amount = 0
        self._heat_mass = 0.0
        self._energy = 0.0
        self._burning = False
        self._catalyzer = 0.0
        self._altered = False

    # --- read access -----------------------------------------------------

    @property
    def total_amount(self) -> int:
        return self._total_amount

    @property
    def heat_mass(self) -> float:
        return self._heat_mass

    @property
    def energy(self) -> float:
        return self._energy

    @property
    def volume(self) -> int:
        return UNBOUNDED_VOLUME

    @property
    def precise_temperature(self) -> float:
        if self._heat_mass <= 0:
            return 0.0
        return self._energy / self._heat_mass - CELSIUS_OFFSET

    @property
    def temperature(self) -> float:
        return round(self.precise_temperature, 2)

    @property
    def absolute_temperature(self) -> float:
        return self.precise_temperature + CELSIUS_OFFSET

    @property
    def catalyzer(self) -> float:
        return self._catalyzer

    @catalyzer.setter
    def catalyzer(self, strength: float) -> None:
        self._catalyzer = strength

    @property
    def burning(self) -> bool:
        return self._burning

    @burning.setter
    def burning(self, burning: bool) -> None:
        self._burning = burning

    @property
    def reagents(self) -> list[Reagent]:
        return list(self._reagents)

    def items(self) -> list[tuple[Reagent, int]]:
        return list(self._reagents.items())

    def quantities(self) -> list[ReagentQuantity]:
        temperature = self.temperature
        return [ReagentQuantity(r, a, temperature) for r, a in self._reagents.items()]

    def amount(self, reagent: Reagent) -> int:
        return self._reagents.get(reagent, 0)

    def has_reagent(self, reagent: Reagent) -> bool:
        return self._reagents.get(reagent, 0) > 0

    def is_empty(self) -> bool:
        return self._total_amount <= 0

    def state(self, reagent: Reagent) -> ReagentState:
        return reagent.state_at(self.temperature)

    def state_amount(self, state: ReagentState) -> int:
        return sum(a for r, a in self._reagents.items() if self.state(r) == state)

    def concentration(self, reagent: Reagent, state: ReagentState | None = None) -> float:
        amount = self._reagents.get(reagent, 0)
        if state is None:
            total = self._total_amount
        elif self.state(reagent) != state:
            return 0.0
        else:
            total = self.state_amount(state)
        if total <= 0:
            return 0.0
        return amount / total

    def energy_above(self, min_temperature: float) -> float:
        """Energy stored above ``min_temperature`` at the current heat mass."""
        return self._energy - (min_temperature + CELSIUS_OFFSET) * self._heat_mass

    # --- transactions ----------------------------------------------------

    def create_snapshot(self) -> MixtureSnapshot:
        return MixtureSnapshot(
            dict(self._reagents), self._total_amount, self._heat_mass, self._energy
        )

    def read_snapshot(self, snapshot: MixtureSnapshot) -> None:
        self._reagents = dict(snapshot.reagents)
        self._total_amount = snapshot.total_amount
        self._heat_mass = snapshot.heat_mass
        self._energy = snapshot.energy
        self._contents_changed()

    def on_final_commit(self) -> None:
        self._altered = True

    def was_altered(self) -> bool:
        """Return whether the mixture changed since the last call, and reset."""
        altered = self._altered
        self._altered = False
        return altered

    def mark_altered(self) -> None:
        self._altered = True

    def _begin_mutation(self, transaction: Transaction | None) -> None:
        if transaction is None:
            self._altered = True
        else:
            self.update_snapshots(transaction)

    # --- mutation --------------------------------------------------------

    def accepts(self, quantity: ReagentQuantity) -> int:
        """Amount of ``quantity`` this mixture would take."""
        return max(quantity.amount, 0)

    def add(self, quantity: ReagentQuantity, transaction: Transaction | None = None) -> int:
        """Add up to :meth:`accepts` of ``quantity``; return the amount added."""
        reagent = quantity.effective_reagent
        if reagent == EMPTY:
            return 0
        amount = self.accepts(quantity)
        if amount <= 0:
            return 0
        self._begin_mutation(transaction)
        return self._add_internal(reagent, amount, quantity.temperature)

    def add_mixture(self, mixture: ReagentMixture, transaction: Transaction | None = None) -> int:
        """Add each reagent of ``mixture`` at its temperature; return the total added."""
        temperature = mixture.precise_temperature
        return sum(
            self.add(ReagentQuantity(reagent, amount, temperature), transaction)
            for reagent, amount in mixture.items()
        )

    def remove(
        self, reagent: Reagent, amount: int, transaction: Transaction | None = None
    ) -> ReagentQuantity:
        """Remove up to ``amount`` of ``reagent``.

        Returns the removed quantity at the mixture temperature, which may
        be less than requested.
        """
        temperature = self.temperature
        requested = max(0, min(self.amount(reagent), amount))
        if requested <= 0:
            return ReagentQuantity(reagent, 0, temperature)
        self._begin_mutation(transaction)
        removed = self._remove_internal(reagent, requested)
        return ReagentQuantity(reagent, removed, temperature)

    def remove_from(
        self,
        amount: int,
        reagents: Collection[Reagent],
        transaction: Transaction | None = None,
    ) -> ReagentMixture:
        """Remove ``amount`` spread proportionally over ``reagents``.

        Each present reagent contributes its share rounded half up, at least
        one unit, without exceeding the remaining budget or what is held.
        The extracted mixture has the temperature of this one.
        """
        extracted = ReagentMixture()
        selected = [(r, a) for r, a in self._reagents.items() if r in reagents and a > 0]
        selected_total = sum(a for _, a in selected)
        requested = min(max(amount, 0), selected_total)
        if requested <= 0:
            return extracted
        temperature = self.precise_temperature
        shares = []
        budget = requested
        for reagent, held in selected:
            share = min(max(_round_half_up(requested * held / selected_total), 1), budget, held)
            if share <= 0:
                break
            shares.append((reagent, share))
            budget -= share
        self._begin_mutation(transaction)
        for reagent, share in shares:
            removed = self._remove_internal(reagent, share)
            extracted._add_internal(reagent, removed, temperature)
        return extracted

    def remove_state(
        self, amount: int, state: ReagentState, transaction: Transaction | None = None
    ) -> ReagentMixture:
        in_state = [r for r in self._reagents if self.state(r) == state]
        return self.remove_from(amount, in_state, transaction)

    def remove_all(self, transaction: Transaction | None = None) -> ReagentMixture:
        return self.remove_from(self._total_amount, self.reagents, transaction)

    def add_energy(self, energy: float, transaction: Transaction | None = None) -> None:
        if energy == 0:
            return
        self._begin_mutation(transaction)
        self._energy += energy
        self._contents_changed()

    def remove_energy(self, energy: float, transaction: Transaction | None = None) -> None:
        self.add_energy(-energy, transaction)

    def clear(self, transaction: Transaction | None = None) -> None:
        self._begin_mutation(transaction)
        self._reagents = {}
        self._total_amount = 0
        self._heat_mass = 0.0
        self._energy = 0.0
        self._contents_changed()

    # --- reactions -------------------------------------------------------

    def apply_reaction(
        self,
        rule: ReactionRule,
        progress: ProgressStore,
        transaction: Transaction | None = None,
    ) -> int:
        """Run ``rule`` once at its current rate; return the whole units reacted.

        The fractional part of the rate is stored in ``progress`` for the
        next tick. Ingredient energy plus the reaction energy is split over
        the results by heat mass, so results share one temperature.
        """
        rate = rule.calculate_rate(self, progress.get_progress(rule))
        if rate <= 0:
            return 0
        rate = self._limit_by_ingredients(rule.ingredients, rate)
        whole = int(rate)
        if whole > 0:
            self._begin_mutation(transaction)
            targets = [(self, result) for result in rule.results]
            self._react(rule.ingredients, whole, targets, rule.energy * whole)
            if rule.has_flag(ReactionFlag.COMBUSTION):
                self._burning = True
        progress.set_progress(rule, rate - whole)
        return whole

    def apply_electrolysis(
        self,
        rule: ElectrolysisRule,
        potential: float,
        negative_receiver: ReagentMixture | None = None,
        transaction: Transaction | None = None,
    ) -> int:
        """Run ``rule`` at ``potential``.

        Results flagged negative go to ``negative_receiver`` (this mixture
        when not given), the others stay here.
        """
        receiver = self if negative_receiver is None else negative_receiver
        rate = self._limit_by_ingredients(rule.ingredients, potential * rule.rate_constant)
        whole = int(rate) if rate > 0 else 0
        if whole <= 0:
            return 0
        self._begin_mutation(transaction)
        if receiver is not self:
            receiver._begin_mutation(transaction)
        targets = [
            (receiver if result.negative else self, result.quantity) for result in rule.results
        ]
        self._react(rule.ingredients, whole, targets, 0.0)
        return whole

    def _limit_by_ingredients(self, ingredients: Iterable[ReagentIngredient], rate: float) -> float:
        for ingredient in ingredients:
            if ingredient.amount > 0:
                rate = min(rate, self.amount(ingredient.reagent) // ingredient.amount)
        return rate

    def _react(
        self,
        ingredients: Iterable[ReagentIngredient],
        whole: int,
        targets: list[tuple[ReagentMixture, ReagentQuantity]],
        energy: float,
    ) -> None:
        temperature = self.precise_temperature
        energy_pool = energy
        for ingredient in ingredients:
            amount = ingredient.amount * whole
            energy_pool += stack_energy(ingredient.reagent, amount, temperature)
            self._remove_internal(ingredient.reagent, amount)
        results = [(target, q.reagent, q.amount * whole) for target, q in targets if q.amount > 0]
        result_heat_mass = sum(stack_heat_mass(r, a) for _, r, a in results)
        if result_heat_mass <= 0:
            self._energy += energy_pool
            self._contents_changed()
            return
        for target, reagent, amount in results:
            share = stack_heat_mass(reagent, amount) / result_heat_mass
            target._insert(reagent, amount, energy_pool * share)

    # --- scaling ---------------------------------------------------------

    def scaled_by(self, factor: float) -> ReagentMixture:
        """Copy with every amount multiplied by ``factor``, same temperature."""
        result = ReagentMixture()
        temperature = self.precise_temperature
        for reagent, amount in self._reagents.items():
            result._add_internal(reagent, _round_half_up(amount * factor), temperature)
        return result

    def scaled_to(self, total: int) -> ReagentMixture:
        if self._total_amount <= 0:
            return ReagentMixture()
        return self.scaled_by(total / self._total_amount)

    def copy(self) -> ReagentMixture:
        return self.scaled_by(1.0)

    # --- internals -------------------------------------------------------

    def _add_internal(self, reagent: Reagent, amount: int, temperature: float) -> int:
        return self._insert(reagent, amount, stack_energy(reagent, amount, temperature))

    def _insert(self, reagent: Reagent, amount: int, energy: float) -> int:
        if amount <= 0 or reagent == EMPTY:
            return 0
        self._reagents[reagent] = self._reagents.get(reagent, 0) + amount
        self._total_amount += amount
        self._heat_mass += stack_heat_mass(reagent, amount)
        self._energy += energy
        self._contents_changed()
        return amount

    def _remove_internal(self, reagent: Reagent, amount: int) -> int:
        held = self._reagents.get(reagent, 0)
        amount = min(held, amount)
        if amount <= 0:
            return 0
        temperature = self.precise_temperature
        if held == amount:
            del self._reagents[reagent]
        else:
            self._reagents[reagent] = held - amount
        self._energy -= stack_energy(reagent, amount, temperature)
        self._heat_mass -= stack_heat_mass(reagent, amount)
        self._total_amount -= amount
        if self._total_amount == 0:
            # Float residue on an empty mixture would give a wild temperature.
            self._heat_mass = 0.0
            self._energy = 0.0
        self._contents_changed()
        return amount

    def _contents_changed(self) -> None:
        """Hook for subclasses that derive state from the contents."""

    # --- serialization ---------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "energy": self._energy,
            "reagents": [{"id": r.id, "amount": a} for r, a in self._reagents.items()],
        }
        if self._burning:
            data["burning"] = True
        return data

    def load(self, data: Mapping[str, Any], catalog: ReagentCatalog) -> None:
        """Replace the contents with a :meth:`to_dict` payload.

        Unknown reagent ids are skipped with a warning.
        """
        self._reagents = {}
        self._total_amount = 0
        self._heat_mass = 0.0
        self._energy = 0.0
        for entry in data.get("reagents", []):
            reagent = catalog.lookup(entry["id"])
            if reagent == EMPTY:
                logger.warning("Invalid reagent id in mixture data: '%s'", entry["id"])
                continue
            self._insert(reagent, int(entry["amount"]), 0.0)
        self._energy = float(data.get("energy", 0.0))
        self._burning = bool(data.get("burning", False))
        self._contents_changed()

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], catalog: ReagentCatalog, **kwargs: Any
    ) -> ReagentMixture:
        mixture = cls(**kwargs)
        mixture.load(data, catalog)
        return mixture

    def __repr__(self) -> str:
        contents = ", ".join(f"{a} {r}" for r, a in self._reagents.items())
        return f"{type(self).__name__}(T={self.temperature}, [{contents}])"


class ConstantMixture(ReagentMixture):
    """Immutable reference mixture, such as the outside atmosphere."""

    def __init__(self, temperature: float, *quantities: ReagentQuantity) -> None:
        self._sealed = False
        super().__init__()
        for quantity in quantities:
            super()._add_internal(quantity.reagent, quantity.amount, temperature)
        self._sealed = True

    def accepts(self, quantity: ReagentQuantity) -> int:
        return 0

    def _insert(self, reagent: Reagent, amount: int, energy: float) -> int:
        if self._sealed:
            return 0
        return super()._insert(reagent, amount, energy)

    def _remove_internal(self, reagent: Reagent, amount: int) -> int:
        return 0

    def add_energy(self, energy: float, transaction: Transaction | None = None) -> None:
        pass

    def clear(self, transaction: Transaction | None = None) -> None:
        pass


def atmosphere(catalog: ReagentCatalog, temperature: float = DEFAULT_TEMPERATURE) -> ConstantMixture:
    """Outside air: 78% nitrogen and 21% oxygen by amount."""
    return ConstantMixture(
        temperature,
        ReagentQuantity(catalog.lookup("nitrogen"), 780),
        ReagentQuantity(catalog.lookup("oxygen"), 210),
    )

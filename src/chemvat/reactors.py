"""Chemical vat model and tick-loop driver.

A :class:`ChemicalVat` owns a bounded mixture and steps it one tick at a
time. Each tick:

- exchanges reagents with neighbouring vats (solids fall, liquids level
  out, gases equalise headspace density, and the remaining budget diffuses),
- applies every valid reaction rule in random order,
- runs electrolysis when an electrode potential is set,
- lets an open vat breathe with the atmosphere and spill excess liquid, or
  a closed vat lose heat to the surroundings,
- applies the heater.

:func:`run_vats` drives a group of connected vats and collects numpy
profiles of their state.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Sequence

import numpy as np

from chemvat.catalog import ReagentCatalog
from chemvat.constants import (
    ATMOSPHERE_TEMPERATURE,
    ATMOSPHERIC_PRESSURE,
    BLOCK_MOLE_AMOUNT,
    CELSIUS_OFFSET,
)
from chemvat.mixture import ReagentMixture, atmosphere
from chemvat.models import Reagent, ReagentState
from chemvat.progress import ProgressStore
from chemvat.reactions import (
    ElectrolysisRule,
    ReactionFlag,
    ReactionRule,
    possible_electrolysis,
    valid_rules,
)
from chemvat.thermo import amount_at_pressure, equalizing_amount
from chemvat.transaction import Transaction
from chemvat.transfer import diffuse, force_move_reagents, move_reagents
from chemvat.volume import VolumeMixture

logger = logging.getLogger(__name__)

# (power W, target temperature C)
HEATER_PRESETS: dict[str, tuple[float, float]] = {
    "smouldering": (10000.0, 150.0),
    "kindled": (30000.0, 500.0),
    "seething": (90000.0, 1300.0),
}


class Direction(enum.Enum):
    DOWN = (0, -1, 0)
    UP = (0, 1, 0)
    NORTH = (0, 0, -1)
    SOUTH = (0, 0, 1)
    WEST = (-1, 0, 0)
    EAST = (1, 0, 0)

    @property
    def opposite(self) -> Direction:
        x, y, z = self.value
        return Direction((-x, -y, -z))

    @property
    def is_vertical(self) -> bool:
        return self.value[1] != 0


@dataclass(frozen=True)
class VatConfiguration:
    """Physical configuration of a chemical vat.

    Attributes:
        volume: Capacity for solids and liquids (amount units).
        open: Whether the vat top is open to the atmosphere.
        tick_seconds: Simulated time per tick (s).
        diffusion_coefficient: Diffusion rate per kelvin of absolute temperature.
        liquid_stack_pressure: Extra fill level a full vat pushes into the one below.
        dissipation_factor: Heat loss of a closed vat (W/K).
        heater_power: Heater power (W); 0 disables the heater.
        heater_temperature: Temperature the heater drives the mixture toward (C).
        catalyzer: Catalyzer strength installed in the vat.
        electrode_potential: Electrolysis potential (V); 0 disables electrolysis.
        ambient_temperature: Outside temperature (C).
        exchange_limit: Largest atmosphere exchange per tick (amount units).
    """

    volume: int = BLOCK_MOLE_AMOUNT * 8
    open: bool = False
    tick_seconds: float = 0.05
    diffusion_coefficient: float = 0.000025
    liquid_stack_pressure: float = 0.015
    dissipation_factor: float = 30.0
    heater_power: float = 0.0
    heater_temperature: float = ATMOSPHERE_TEMPERATURE
    catalyzer: float = 0.0
    electrode_potential: float = 0.0
    ambient_temperature: float = ATMOSPHERE_TEMPERATURE
    exchange_limit: int = 100000


class ChemicalVat:
    """A bounded mixture stepped once per tick."""

    def __init__(
        self,
        catalog: ReagentCatalog,
        rules: Sequence[ReactionRule],
        configuration: VatConfiguration = VatConfiguration(),
        electrolysis: Sequence[ElectrolysisRule] = (),
        rng: np.random.Generator | None = None,
        name: str = "vat",
    ) -> None:
        self.catalog = catalog
        self.rules = list(rules)
        self.electrolysis = list(electrolysis)
        self.configuration = configuration
        self.rng = rng if rng is not None else np.random.default_rng()
        self.name = name
        self.mixture = VolumeMixture(configuration.volume, configuration.open)
        self.mixture.catalyzer = configuration.catalyzer
        self.progress = ProgressStore()
        self.neighbours: dict[Direction, ChemicalVat] = {}
        self.electrolysis_receiver: ReagentMixture | None = None
        self.atmosphere = atmosphere(catalog)
        self.ticks = 0

    def connect(self, direction: Direction, other: ChemicalVat) -> None:
        """Make ``other`` the neighbour on ``direction`` and vice versa."""
        self.neighbours[direction] = other
        other.neighbours[direction.opposite] = self

    @property
    def is_open(self) -> bool:
        return self.mixture.is_open

    @is_open.setter
    def is_open(self, is_open: bool) -> None:
        self.mixture.is_open = is_open

    @property
    def diffusion_rate(self) -> float:
        return (self.mixture.temperature + CELSIUS_OFFSET) * self.configuration.diffusion_coefficient

    @property
    def elapsed(self) -> float:
        return self.ticks * self.configuration.tick_seconds

    def tick(self) -> None:
        self.move_reagents()
        self.apply_reactions()
        self.apply_electrolysis()
        if self.is_open:
            self.exchange_with_atmosphere()
            self.spill_liquids()
        else:
            self.dissipate_heat()
        self.apply_heater()
        self.ticks += 1

    # --- reactions -------------------------------------------------------

    def apply_reactions(self) -> int:
        """Apply valid rules in random order; return the total units reacted."""
        rules = valid_rules(self.rules, self.mixture)
        self.rng.shuffle(rules)
        still_burning = False
        total = 0
        for rule in rules:
            # An earlier rule may have used up what this one needs.
            if not rule.test(self.mixture):
                continue
            reacted = self.mixture.apply_reaction(rule, self.progress)
            if rule.has_flag(ReactionFlag.COMBUSTION):
                still_burning = True
            if reacted:
                logger.debug("%s: applied %s x%d", self.name, rule.id, reacted)
            total += reacted
        self.progress.filter(rules)
        if not still_burning:
            self.mixture.burning = False
        return total

    def apply_electrolysis(self) -> int:
        potential = self.configuration.electrode_potential
        if potential <= 0 or not self.electrolysis:
            return 0
        total = 0
        for rule in possible_electrolysis(self.electrolysis, self.mixture, potential):
            total += self.mixture.apply_electrolysis(rule, potential, self.electrolysis_receiver)
        return total

    # --- neighbour movement ----------------------------------------------

    def move_reagents(self) -> None:
        by_state: dict[ReagentState, set[Reagent]] = {state: set() for state in ReagentState}
        for reagent in self.mixture.reagents:
            by_state[self.mixture.state(reagent)].add(reagent)
        solids = by_state[ReagentState.SOLID]
        liquids = by_state[ReagentState.LIQUID]
        gases = by_state[ReagentState.GAS]

        for direction in Direction:
            vat = self.neighbours.get(direction)
            if vat is None:
                continue
            if direction is Direction.DOWN and solids:
                move_reagents(self.mixture, solids, vat.mixture, self.mixture.total_amount)
            if liquids:
                self._move_liquids(direction, vat, liquids)
            if gases:
                self._move_gases(vat, gases)
            if self.mixture.burning:
                vat.mixture.burning = True

    def _move_liquids(self, direction: Direction, vat: ChemicalVat, liquids: set[Reagent]) -> None:
        level = self.mixture.fill_level
        other_level = vat.mixture.fill_level
        stack = self.configuration.liquid_stack_pressure
        if not direction.is_vertical:
            fraction = level - (level + other_level) * 0.5
        elif direction is Direction.UP:
            # Only liquid above the pressure the upper vat exerts moves up.
            expected = max(min(other_level, 1.0) * stack + other_level - 1.0, 0.0)
            fraction = max(level - 1.0 - expected, 0.0) * 0.5
        else:
            additional = max(min(level, 1.0) * stack + level - 1.0, 0.0)
            fraction = min((1.0 - other_level + additional) * 0.5, level)

        move_amount = int(fraction * self.mixture.volume)
        diffuse_amount = int(self.mixture.liquid_amount * self.diffusion_rate) - abs(move_amount)
        if move_amount > 0:
            force_move_reagents(self.mixture, liquids, vat.mixture, move_amount)
        if diffuse_amount > 0:
            diffuse(self.mixture, vat.mixture, liquids, ReagentState.LIQUID, diffuse_amount)

    def _move_gases(self, vat: ChemicalVat, gases: set[Reagent]) -> None:
        source, target = self.mixture, vat.mixture
        if source.headspace <= 0 and target.headspace <= 0:
            return
        if source.headspace <= 0:
            move_reagents(source, gases, target, source.gas_amount)
            return
        if target.headspace <= 0:
            return
        move_amount = equalizing_amount(
            source.gas_amount, source.headspace, target.gas_amount, target.headspace
        )
        move_amount = min(move_amount, int(source.gas_amount * 0.9))
        diffuse_amount = int(source.gas_amount * self.diffusion_rate) - abs(move_amount)
        if move_amount > 0:
            move_reagents(source, gases, target, move_amount)
        if diffuse_amount > 0:
            diffuse(source, target, gases, ReagentState.GAS, diffuse_amount)

    # --- surroundings ----------------------------------------------------

    def exchange_with_atmosphere(self) -> int:
        """Drive the headspace toward atmospheric pressure.

        Returns the net gas amount taken in (negative when venting).
        """
        mixture = self.mixture
        start = mixture.gas_amount
        target = amount_at_pressure(
            ATMOSPHERIC_PRESSURE, mixture.absolute_temperature, mixture.headspace
        )
        move_amount = target - start
        if move_amount < 0:
            move_amount = -min(-move_amount, int(start * 0.9))
        limit = self.configuration.exchange_limit
        move_amount = max(-limit, min(limit, move_amount))
        diffuse_amount = int(self.diffusion_rate * start) - abs(move_amount)

        with Transaction.open_outer() as transaction:
            if diffuse_amount > 0:
                released = mixture.remove_state(diffuse_amount, ReagentState.GAS, transaction)
                mixture.add_mixture(
                    self.atmosphere.scaled_to(released.total_amount), transaction
                )
            if move_amount < 0:
                mixture.remove_state(-move_amount, ReagentState.GAS, transaction)
            elif move_amount > 0:
                mixture.add_mixture(self.atmosphere.scaled_to(move_amount), transaction)
            transaction.commit()
        return move_amount

    def spill_liquids(self) -> int:
        level = self.mixture.fill_level
        if level <= 1:
            return 0
        spill_amount = int((level - 1) * self.mixture.volume)
        with Transaction.open_outer() as transaction:
            spilled = self.mixture.remove_state(spill_amount, ReagentState.LIQUID, transaction)
            transaction.commit()
        if spilled.total_amount:
            logger.debug("%s: spilled %d", self.name, spilled.total_amount)
        return spilled.total_amount

    def dissipate_heat(self) -> None:
        if self.mixture.is_empty():
            return
        difference = self.mixture.temperature - self.configuration.ambient_temperature
        self.mixture.remove_energy(
            difference * self.configuration.dissipation_factor * self.configuration.tick_seconds
        )

    def apply_heater(self) -> None:
        config = self.configuration
        if config.heater_power <= 0 or self.mixture.is_empty():
            return
        difference = config.heater_temperature - self.mixture.precise_temperature
        needed = max(difference * self.mixture.heat_mass, 0.0)
        self.mixture.add_energy(min(config.heater_power * config.tick_seconds, needed))

    # --- state -----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "configuration": asdict(self.configuration),
            "mixture": self.mixture.to_dict(),
            "progress": self.progress.to_dict(),
            "ticks": self.ticks,
        }

    def __repr__(self) -> str:
        return f"ChemicalVat({self.name!r}, {self.mixture!r})"


@dataclass
class VatProfile:
    """Sampled history of one vat."""

    name: str
    time: np.ndarray
    temperature: np.ndarray
    fill_level: np.ndarray
    pressure: np.ndarray
    amounts: dict[str, np.ndarray] = field(default_factory=dict)

    def final(self) -> dict[str, Any]:
        return {
            "T": float(self.temperature[-1]),
            "fill_level": float(self.fill_level[-1]),
            "pressure": float(self.pressure[-1]),
            "amounts": {reagent: int(values[-1]) for reagent, values in self.amounts.items()},
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "time": self.time.tolist(),
            "T": self.temperature.tolist(),
            "fill_level": self.fill_level.tolist(),
            "pressure": self.pressure.tolist(),
            "amounts": {reagent: values.tolist() for reagent, values in self.amounts.items()},
            "final": self.final(),
        }


def run_vats(vats: Sequence[ChemicalVat], ticks: int, sample_every: int = 1) -> list[VatProfile]:
    """Tick every vat ``ticks`` times and sample their state.

    The initial state is always sampled, then every ``sample_every`` ticks
    and after the last tick.
    """
    if sample_every <= 0:
        raise ValueError("sample_every must be positive")
    samples: list[list[tuple[float, float, float, float, dict[str, int]]]] = [[] for _ in vats]

    def sample() -> None:
        for vat, rows in zip(vats, samples):
            mixture = vat.mixture
            amounts = {reagent.id: amount for reagent, amount in mixture.items()}
            rows.append(
                (vat.elapsed, mixture.temperature, mixture.fill_level, mixture.static_pressure, amounts)
            )

    sample()
    for step in range(1, ticks + 1):
        for vat in vats:
            vat.tick()
        if step % sample_every == 0 or step == ticks:
            sample()

    profiles = []
    for vat, rows in zip(vats, samples):
        reagent_ids: list[str] = []
        for row in rows:
            reagent_ids.extend(r for r in row[4] if r not in reagent_ids)
        profiles.append(
            VatProfile(
                name=vat.name,
                time=np.array([row[0] for row in rows]),
                temperature=np.array([row[1] for row in rows]),
                fill_level=np.array([row[2] for row in rows]),
                pressure=np.array([row[3] for row in rows]),
                amounts={
                    reagent_id: np.array([row[4].get(reagent_id, 0) for row in rows])
                    for reagent_id in reagent_ids
                },
            )
        )
    return profiles

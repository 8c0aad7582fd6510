"""Reaction rules and rule selection.

A :class:`ReactionRule` is declarative: ingredients consumed per unit of
rate, results produced per unit, preconditions, flags, the energy released
per unit and a rate equation. Rules never mutate anything themselves;
:meth:`chemvat.mixture.ReagentMixture.apply_reaction` does.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

from chemvat.conditions import Condition, TemperatureCondition
from chemvat.constants import ELECTROLYSIS_RATE_CONSTANT
from chemvat.kinetics import Constant, Equation, evaluate
from chemvat.models import ReagentIngredient, ReagentQuantity
from chemvat.thermo import MixtureConditions

if TYPE_CHECKING:
    from chemvat.mixture import ReagentMixture


class ReactionFlag(enum.IntFlag):
    NONE = 0
    COMBUSTION = 1

    @classmethod
    def from_names(cls, names: Iterable[str]) -> ReactionFlag:
        flags = cls.NONE
        for name in names:
            try:
                flags |= cls[name.upper()]
            except KeyError:
                raise ValueError(f"Unknown reaction flag name '{name}'") from None
        return flags

    def names(self) -> list[str]:
        return [flag.name.lower() for flag in type(self) if flag and flag in self]


@dataclass(frozen=True)
class ReactionRule:
    id: str
    ingredients: tuple[ReagentIngredient, ...]
    results: tuple[ReagentQuantity, ...]
    conditions: tuple[Condition, ...] = ()
    flags: ReactionFlag = ReactionFlag.NONE
    energy: float = 0.0
    rate: Equation = Constant(1.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "ingredients", tuple(self.ingredients))
        object.__setattr__(self, "results", tuple(self.results))
        conditions = tuple(self.conditions)
        if not any(isinstance(condition, TemperatureCondition) for condition in conditions):
            conditions += (TemperatureCondition(),)
        object.__setattr__(self, "conditions", conditions)

    @property
    def temperature_condition(self) -> TemperatureCondition:
        return next(c for c in self.conditions if isinstance(c, TemperatureCondition))

    def has_flag(self, flag: ReactionFlag) -> bool:
        return bool(self.flags & flag)

    def test(self, mixture: ReagentMixture) -> bool:
        """Check ingredient amounts and every condition.

        Burning mixtures skip the temperature window of combustion rules:
        a fire keeps going once lit.
        """
        for ingredient in self.ingredients:
            if mixture.amount(ingredient.reagent) < ingredient.amount:
                return False
        skip_temperature = mixture.burning and self.has_flag(ReactionFlag.COMBUSTION)
        for condition in self.conditions:
            if skip_temperature and isinstance(condition, TemperatureCondition):
                continue
            if not condition.test(mixture):
                return False
        return True

    def calculate_rate(self, conditions: MixtureConditions, progress_offset: float = 0.0) -> float:
        """Candidate rate, including carried-over progress.

        Exothermic rules cannot heat the mixture past the top of their
        temperature window and endothermic ones cannot cool it below the
        bottom.
        """
        max_rate = evaluate(self.rate, conditions) + progress_offset
        if max_rate <= 0:
            return 0.0
        window = self.temperature_condition
        heat_mass = conditions.heat_mass
        if heat_mass > 0:
            delta_t = self.energy / heat_mass
            if self.energy > 0 and window.maximum is not None:
                max_rate = min(max_rate, (window.maximum - conditions.temperature) / delta_t)
            elif self.energy < 0:
                max_rate = min(max_rate, (window.minimum - conditions.temperature) / delta_t)
        return max(max_rate, 0.0)


@dataclass(frozen=True)
class ElectrolysisResult:
    negative: bool
    quantity: ReagentQuantity


@dataclass(frozen=True)
class ElectrolysisRule:
    id: str
    ingredients: tuple[ReagentIngredient, ...]
    results: tuple[ElectrolysisResult, ...]
    minimum_potential: float
    rate_constant: float = ELECTROLYSIS_RATE_CONSTANT

    def __post_init__(self) -> None:
        object.__setattr__(self, "ingredients", tuple(self.ingredients))
        object.__setattr__(self, "results", tuple(self.results))

    def accepts_potential(self, potential: float) -> bool:
        return potential >= self.minimum_potential


def possible_rules(
    rules: Iterable[ReactionRule], mixture: ReagentMixture
) -> list[ReactionRule]:
    """Rules whose ingredients are all present in any amount."""
    return [
        rule
        for rule in rules
        if all(mixture.has_reagent(ingredient.reagent) for ingredient in rule.ingredients)
    ]


def valid_rules(rules: Iterable[ReactionRule], mixture: ReagentMixture) -> list[ReactionRule]:
    """Rules that currently pass :meth:`ReactionRule.test`."""
    return [rule for rule in possible_rules(rules, mixture) if rule.test(mixture)]


def possible_electrolysis(
    rules: Sequence[ElectrolysisRule], mixture: ReagentMixture, potential: float
) -> list[ElectrolysisRule]:
    return [
        rule
        for rule in rules
        if rule.accepts_potential(potential)
        and all(mixture.has_reagent(ingredient.reagent) for ingredient in rule.ingredients)
    ]

"""Reaction preconditions evaluated against mixture state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from chemvat.catalog import ReagentCatalog
from chemvat.models import EMPTY, Reagent, ReagentState
from chemvat.thermo import MixtureConditions


@dataclass(frozen=True)
class TemperatureCondition:
    """Holds while ``minimum <= T < maximum``."""

    minimum: float = 0.0
    maximum: float | None = None

    type_name = "temperature"

    def test(self, conditions: MixtureConditions) -> bool:
        temperature = conditions.temperature
        if temperature < self.minimum:
            return False
        return self.maximum is None or temperature < self.maximum


@dataclass(frozen=True)
class ConcentrationCondition:
    reagent: Reagent
    minimum: float | None = None
    maximum: float | None = None
    state: ReagentState | None = None

    type_name = "concentration"

    def __post_init__(self) -> None:
        if self.minimum is None and self.maximum is None:
            raise ValueError("Empty concentration condition")
        for bound in (self.minimum, self.maximum):
            if bound is not None and not 0.0 <= bound <= 1.0:
                raise ValueError("Reagent concentration bounds must be in [0; 1] range")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ValueError(
                "Minimum reagent concentration must be smaller than maximum concentration"
            )

    def test(self, conditions: MixtureConditions) -> bool:
        concentration = conditions.concentration(self.reagent, self.state)
        if self.minimum is not None and concentration < self.minimum:
            return False
        if self.maximum is not None and concentration > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class CatalyzerCondition:
    strength: float

    type_name = "catalyzer"

    def test(self, conditions: MixtureConditions) -> bool:
        return conditions.catalyzer >= self.strength


Condition = Union[TemperatureCondition, ConcentrationCondition, CatalyzerCondition]


def parse_condition(data: dict[str, Any], catalog: ReagentCatalog) -> Condition:
    condition_type = data.get("type")
    if condition_type == TemperatureCondition.type_name:
        return TemperatureCondition(
            minimum=float(data.get("min", 0.0)),
            maximum=_optional_float(data.get("max")),
        )
    if condition_type == ConcentrationCondition.type_name:
        reagent = catalog.lookup(data["reagent"])
        if reagent == EMPTY:
            raise ValueError(f"Unknown reagent in concentration condition: '{data['reagent']}'")
        state = data.get("in")
        return ConcentrationCondition(
            reagent=reagent,
            minimum=_optional_float(data.get("min")),
            maximum=_optional_float(data.get("max")),
            state=ReagentState(state) if state is not None else None,
        )
    if condition_type == CatalyzerCondition.type_name:
        return CatalyzerCondition(strength=float(data["strength"]))
    raise ValueError(f"Unknown condition type: {condition_type}")


def condition_to_json(condition: Condition) -> dict[str, Any]:
    data: dict[str, Any] = {"type": condition.type_name}
    if isinstance(condition, TemperatureCondition):
        data["min"] = condition.minimum
        if condition.maximum is not None:
            data["max"] = condition.maximum
    elif isinstance(condition, ConcentrationCondition):
        data["reagent"] = condition.reagent.id
        if condition.minimum is not None:
            data["min"] = condition.minimum
        if condition.maximum is not None:
            data["max"] = condition.maximum
        if condition.state is not None:
            data["in"] = condition.state.value
    else:
        data["strength"] = condition.strength
    return data


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)

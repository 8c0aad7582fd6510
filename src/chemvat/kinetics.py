"""Reaction rate expressions.

A rate equation is a small expression tree of frozen dataclasses:
leaves read constants or mixture state, :class:`Operation` nodes combine
their terms. :func:`evaluate` walks the tree against a
:class:`~chemvat.thermo.MixtureConditions` and never raises; division by
zero, empty ``min``/``max`` and non-finite results all give ``0``.

JSON form::

    2.5                                  constant
    "T" | "temp" | "temperature"         mixture temperature (C)
    "Conc#oxygen"                        concentration of a reagent
    "Cat" | "catalyzer"                  catalyzer strength
    {"multiply": [15, "Conc#oxygen"]}    operator over a list of terms

A map with several operator keys is the sum of those operators.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from chemvat.catalog import ReagentCatalog
from chemvat.models import EMPTY, Reagent
from chemvat.thermo import MixtureConditions

OPERATORS = ("add", "subtract", "multiply", "divide", "min", "max", "polynomial")

_TEMPERATURE_NAMES = ("T", "temp", "temperature")
_CONCENTRATION_NAMES = ("Conc", "concentration")
_CATALYZER_NAMES = ("Cat", "catalyzer", "catalyzerStrength")


@dataclass(frozen=True)
class Constant:
    value: float


@dataclass(frozen=True)
class Temperature:
    pass


@dataclass(frozen=True)
class Concentration:
    reagent: Reagent


@dataclass(frozen=True)
class Catalyzer:
    pass


@dataclass(frozen=True)
class Operation:
    """Operator node.

    ``polynomial`` terms are ``x`` followed by the coefficients, highest
    power first, so it needs at least three terms (a linear equation).
    """

    operator: str
    terms: tuple[Equation, ...]

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise ValueError(f"Unknown equation operator: {self.operator}")
        if self.operator == "polynomial" and len(self.terms) < 3:
            raise ValueError("Polynomial equation must contain at least three parameters")


Equation = Union[Constant, Temperature, Concentration, Catalyzer, Operation]


def add(*terms: Equation) -> Operation:
    return Operation("add", terms)


def subtract(*terms: Equation) -> Operation:
    return Operation("subtract", terms)


def multiply(*terms: Equation) -> Operation:
    return Operation("multiply", terms)


def divide(*terms: Equation) -> Operation:
    return Operation("divide", terms)


def minimum(*terms: Equation) -> Operation:
    return Operation("min", terms)


def maximum(*terms: Equation) -> Operation:
    return Operation("max", terms)


def polynomial(x: Equation, *coefficients: float | Equation) -> Operation:
    terms = [c if not isinstance(c, (int, float)) else Constant(float(c)) for c in coefficients]
    return Operation("polynomial", (x, *terms))


def evaluate(equation: Equation, conditions: MixtureConditions) -> float:
    """Evaluate ``equation`` against the mixture state."""
    value = _evaluate(equation, conditions)
    return value if math.isfinite(value) else 0.0


def _evaluate(equation: Equation, conditions: MixtureConditions) -> float:
    if isinstance(equation, Constant):
        return equation.value
    if isinstance(equation, Temperature):
        return conditions.temperature
    if isinstance(equation, Concentration):
        return conditions.concentration(equation.reagent)
    if isinstance(equation, Catalyzer):
        return conditions.catalyzer
    return _apply(equation.operator, [_evaluate(term, conditions) for term in equation.terms])


def _apply(operator: str, values: list[float]) -> float:
    if operator == "add":
        return sum(values)
    if operator == "multiply":
        return math.prod(values)
    if operator == "polynomial":
        with np.errstate(all="ignore"):
            return float(np.polyval(values[1:], values[0]))
    if not values:
        return 0.0
    if operator == "subtract":
        return values[0] - sum(values[1:])
    if operator == "divide":
        result = values[0]
        for divisor in values[1:]:
            if divisor == 0:
                return 0.0
            result /= divisor
        return result
    if operator == "min":
        return min(values)
    return max(values)


def parse_equation(data: Any, catalog: ReagentCatalog) -> Equation:
    """Build an equation from its JSON form."""
    if isinstance(data, bool):
        raise ValueError(f"Unsupported equation element: {data!r}")
    if isinstance(data, (int, float)):
        return Constant(float(data))
    if isinstance(data, str):
        return _parse_variable(data, catalog)
    if isinstance(data, dict):
        operations = []
        for operator, terms in data.items():
            if not isinstance(terms, list):
                raise ValueError(f"Operator '{operator}' expects a list of terms")
            operations.append(
                Operation(operator, tuple(parse_equation(term, catalog) for term in terms))
            )
        if len(operations) == 1:
            return operations[0]
        return Operation("add", tuple(operations))
    raise ValueError(f"Unsupported equation element: {data!r}")


def _parse_variable(text: str, catalog: ReagentCatalog) -> Equation:
    name, _, argument = text.partition("#")
    if name in _TEMPERATURE_NAMES:
        return Temperature()
    if name in _CATALYZER_NAMES:
        return Catalyzer()
    if name in _CONCENTRATION_NAMES:
        reagent = catalog.lookup(argument)
        if reagent == EMPTY:
            raise ValueError(f"Unknown reagent in concentration variable: '{argument}'")
        return Concentration(reagent)
    raise ValueError(f"Unknown variable name: '{name}'")


def equation_to_json(equation: Equation) -> Any:
    if isinstance(equation, Constant):
        return equation.value
    if isinstance(equation, Temperature):
        return "T"
    if isinstance(equation, Concentration):
        return f"Conc#{equation.reagent.id}"
    if isinstance(equation, Catalyzer):
        return "Cat"
    return {equation.operator: [equation_to_json(term) for term in equation.terms]}

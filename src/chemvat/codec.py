"""Reaction and electrolysis definitions: JSON files and a compact binary wire form.

JSON rule::

    {
      "id": "sulfur_combustion",
      "ingredients": [{"reagent": "sulfur", "amount": 1}, ...],
      "results": [{"reagent": "sulfur_dioxide", "amount": 1}],
      "conditions": [{"type": "temperature", "min": 232}, ...],
      "flags": ["combustion"],
      "energy": 297,
      "rate": {"multiply": [15, "Conc#oxygen"]}
    }

The binary form is big-endian; strings are a ``u16`` byte length followed
by UTF-8 and lists are a ``u32`` count followed by the items. Reagents are
written by id, so a decoded rule resolves them against the reader's catalog.
"""

from __future__ import annotations

import json
import struct
from importlib import resources
from pathlib import Path
from typing import Any, Iterable

from chemvat.catalog import ReagentCatalog
from chemvat.conditions import (
    CatalyzerCondition,
    ConcentrationCondition,
    Condition,
    TemperatureCondition,
    condition_to_json,
    parse_condition,
)
from chemvat.constants import ELECTROLYSIS_RATE_CONSTANT
from chemvat.kinetics import (
    OPERATORS,
    Catalyzer,
    Concentration,
    Constant,
    Equation,
    Operation,
    Temperature,
    equation_to_json,
    parse_equation,
)
from chemvat.models import EMPTY, Reagent, ReagentIngredient, ReagentQuantity, ReagentState
from chemvat.reactions import ElectrolysisResult, ElectrolysisRule, ReactionFlag, ReactionRule

_STATES = tuple(ReagentState)


def _reagent(catalog: ReagentCatalog, reagent_id: str) -> Reagent:
    reagent = catalog.lookup(reagent_id)
    if reagent == EMPTY:
        raise ValueError(f"Unknown reagent: '{reagent_id}'")
    return reagent


# --- JSON ------------------------------------------------------------------


def reaction_from_json(
    data: dict[str, Any], catalog: ReagentCatalog, default_id: str | None = None
) -> ReactionRule:
    rule_id = data.get("id", default_id)
    if rule_id is None:
        raise ValueError("Reaction definition has no id")
    ingredients = tuple(
        ReagentIngredient(_reagent(catalog, entry["reagent"]), int(entry["amount"]))
        for entry in data.get("ingredients", [])
    )
    results = tuple(
        ReagentQuantity(_reagent(catalog, entry["reagent"]), int(entry.get("amount", 1)))
        for entry in data.get("results", [])
    )
    conditions = tuple(parse_condition(entry, catalog) for entry in data.get("conditions", []))
    return ReactionRule(
        id=rule_id,
        ingredients=ingredients,
        results=results,
        conditions=conditions,
        flags=ReactionFlag.from_names(data.get("flags", [])),
        energy=float(data.get("energy", 0.0)),
        rate=parse_equation(data.get("rate", 1.0), catalog),
    )


def reaction_to_json(rule: ReactionRule) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": rule.id,
        "ingredients": [
            {"reagent": i.reagent.id, "amount": i.amount} for i in rule.ingredients
        ],
        "results": [{"reagent": r.reagent.id, "amount": r.amount} for r in rule.results],
        "conditions": [condition_to_json(c) for c in rule.conditions],
        "energy": rule.energy,
        "rate": equation_to_json(rule.rate),
    }
    if rule.flags:
        data["flags"] = rule.flags.names()
    return data


def electrolysis_from_json(
    data: dict[str, Any], catalog: ReagentCatalog, default_id: str | None = None
) -> ElectrolysisRule:
    rule_id = data.get("id", default_id)
    if rule_id is None:
        raise ValueError("Electrolysis definition has no id")
    return ElectrolysisRule(
        id=rule_id,
        ingredients=tuple(
            ReagentIngredient(_reagent(catalog, entry["reagent"]), int(entry["amount"]))
            for entry in data.get("ingredients", [])
        ),
        results=tuple(
            ElectrolysisResult(
                negative=bool(entry.get("negative", False)),
                quantity=ReagentQuantity(
                    _reagent(catalog, entry["reagent"]), int(entry.get("amount", 1))
                ),
            )
            for entry in data.get("results", [])
        ),
        minimum_potential=float(data["minimumPotential"]),
        rate_constant=float(data.get("rateConstant", ELECTROLYSIS_RATE_CONSTANT)),
    )


def electrolysis_to_json(rule: ElectrolysisRule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "ingredients": [
            {"reagent": i.reagent.id, "amount": i.amount} for i in rule.ingredients
        ],
        "results": [
            {
                "negative": r.negative,
                "reagent": r.quantity.reagent.id,
                "amount": r.quantity.amount,
            }
            for r in rule.results
        ],
        "minimumPotential": rule.minimum_potential,
        "rateConstant": rule.rate_constant,
    }


def _read_json(path: str | Path) -> Any:
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def _entries(payload: Any, key: str) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return payload if key == "reactions" else []
    return list(payload.get(key, []))


def parse_reactions(payload: Any, catalog: ReagentCatalog, prefix: str = "reaction") -> list[ReactionRule]:
    """Parse a JSON list of rules, or the ``reactions`` key of a mapping."""
    return [
        reaction_from_json(entry, catalog, default_id=f"{prefix}_{index}")
        for index, entry in enumerate(_entries(payload, "reactions"))
    ]


def parse_electrolysis(
    payload: Any, catalog: ReagentCatalog, prefix: str = "electrolysis"
) -> list[ElectrolysisRule]:
    return [
        electrolysis_from_json(entry, catalog, default_id=f"{prefix}_{index}")
        for index, entry in enumerate(_entries(payload, "electrolysis"))
    ]


def load_reactions(path: str | Path, catalog: ReagentCatalog) -> list[ReactionRule]:
    return parse_reactions(_read_json(path), catalog, prefix=Path(path).stem)


def load_electrolysis(path: str | Path, catalog: ReagentCatalog) -> list[ElectrolysisRule]:
    return parse_electrolysis(_read_json(path), catalog, prefix=Path(path).stem)


def _bundled() -> Any:
    text = resources.files("chemvat").joinpath("data/reactions.json").read_text(encoding="utf-8")
    return json.loads(text)


def default_reactions(catalog: ReagentCatalog) -> list[ReactionRule]:
    """Stock rules shipped with the package; needs :func:`default_catalog` reagents."""
    return parse_reactions(_bundled(), catalog)


def default_electrolysis(catalog: ReagentCatalog) -> list[ElectrolysisRule]:
    return parse_electrolysis(_bundled(), catalog)


# --- binary ----------------------------------------------------------------

_TEMPERATURE_TAG = 0
_CONCENTRATION_TAG = 1
_CATALYZER_TAG = 2

_CONSTANT_TAG = 0
_VARIABLE_TEMPERATURE_TAG = 1
_VARIABLE_CONCENTRATION_TAG = 2
_VARIABLE_CATALYZER_TAG = 3
_OPERATION_TAG = 4


class _Writer:
    def __init__(self) -> None:
        self._buffer = bytearray()

    def pack(self, fmt: str, *values: Any) -> None:
        self._buffer += struct.pack(">" + fmt, *values)

    def string(self, text: str) -> None:
        data = text.encode("utf-8")
        if len(data) > 0xFFFF:
            raise ValueError("String too long for wire form")
        self.pack("H", len(data))
        self._buffer += data

    def optional_float(self, value: float | None) -> None:
        self.pack("?d", value is not None, 0.0 if value is None else value)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._offset = 0

    def unpack(self, fmt: str) -> tuple[Any, ...]:
        fmt = ">" + fmt
        size = struct.calcsize(fmt)
        if self._offset + size > len(self._data):
            raise ValueError("Truncated wire data")
        values = struct.unpack_from(fmt, self._data, self._offset)
        self._offset += size
        return values

    def string(self) -> str:
        (length,) = self.unpack("H")
        end = self._offset + length
        if end > len(self._data):
            raise ValueError("Truncated wire data")
        text = self._data[self._offset:end].decode("utf-8")
        self._offset = end
        return text

    def optional_float(self) -> float | None:
        present, value = self.unpack("?d")
        return value if present else None

    @property
    def exhausted(self) -> bool:
        return self._offset == len(self._data)


def _write_condition(writer: _Writer, condition: Condition) -> None:
    if isinstance(condition, TemperatureCondition):
        writer.pack("Bd", _TEMPERATURE_TAG, condition.minimum)
        writer.optional_float(condition.maximum)
    elif isinstance(condition, ConcentrationCondition):
        writer.pack("B", _CONCENTRATION_TAG)
        writer.string(condition.reagent.id)
        writer.optional_float(condition.minimum)
        writer.optional_float(condition.maximum)
        state = -1 if condition.state is None else _STATES.index(condition.state)
        writer.pack("b", state)
    else:
        writer.pack("Bd", _CATALYZER_TAG, condition.strength)


def _read_condition(reader: _Reader, catalog: ReagentCatalog) -> Condition:
    (tag,) = reader.unpack("B")
    if tag == _TEMPERATURE_TAG:
        (minimum,) = reader.unpack("d")
        return TemperatureCondition(minimum, reader.optional_float())
    if tag == _CONCENTRATION_TAG:
        reagent = _reagent(catalog, reader.string())
        minimum = reader.optional_float()
        maximum = reader.optional_float()
        (state,) = reader.unpack("b")
        return ConcentrationCondition(
            reagent, minimum, maximum, None if state < 0 else _STATES[state]
        )
    if tag == _CATALYZER_TAG:
        (strength,) = reader.unpack("d")
        return CatalyzerCondition(strength)
    raise ValueError(f"Unknown condition tag: {tag}")


def _write_equation(writer: _Writer, equation: Equation) -> None:
    if isinstance(equation, Constant):
        writer.pack("Bd", _CONSTANT_TAG, equation.value)
    elif isinstance(equation, Temperature):
        writer.pack("B", _VARIABLE_TEMPERATURE_TAG)
    elif isinstance(equation, Concentration):
        writer.pack("B", _VARIABLE_CONCENTRATION_TAG)
        writer.string(equation.reagent.id)
    elif isinstance(equation, Catalyzer):
        writer.pack("B", _VARIABLE_CATALYZER_TAG)
    else:
        writer.pack("BBI", _OPERATION_TAG, OPERATORS.index(equation.operator), len(equation.terms))
        for term in equation.terms:
            _write_equation(writer, term)


def _read_equation(reader: _Reader, catalog: ReagentCatalog) -> Equation:
    (tag,) = reader.unpack("B")
    if tag == _CONSTANT_TAG:
        (value,) = reader.unpack("d")
        return Constant(value)
    if tag == _VARIABLE_TEMPERATURE_TAG:
        return Temperature()
    if tag == _VARIABLE_CONCENTRATION_TAG:
        return Concentration(_reagent(catalog, reader.string()))
    if tag == _VARIABLE_CATALYZER_TAG:
        return Catalyzer()
    if tag == _OPERATION_TAG:
        operator, count = reader.unpack("BI")
        if operator >= len(OPERATORS):
            raise ValueError(f"Unknown operator index: {operator}")
        terms = tuple(_read_equation(reader, catalog) for _ in range(count))
        return Operation(OPERATORS[operator], terms)
    raise ValueError(f"Unknown equation tag: {tag}")


def _write_amounts(writer: _Writer, entries: Iterable[tuple[Reagent, int]]) -> None:
    entries = list(entries)
    writer.pack("I", len(entries))
    for reagent, amount in entries:
        writer.string(reagent.id)
        writer.pack("i", amount)


def _read_amounts(reader: _Reader, catalog: ReagentCatalog) -> list[tuple[Reagent, int]]:
    (count,) = reader.unpack("I")
    entries = []
    for _ in range(count):
        reagent = _reagent(catalog, reader.string())
        (amount,) = reader.unpack("i")
        entries.append((reagent, amount))
    return entries


def encode_reaction(rule: ReactionRule) -> bytes:
    writer = _Writer()
    writer.string(rule.id)
    _write_amounts(writer, ((i.reagent, i.amount) for i in rule.ingredients))
    _write_amounts(writer, ((r.reagent, r.amount) for r in rule.results))
    writer.pack("I", len(rule.conditions))
    for condition in rule.conditions:
        _write_condition(writer, condition)
    writer.pack("Id", int(rule.flags), rule.energy)
    _write_equation(writer, rule.rate)
    return writer.getvalue()


def decode_reaction(data: bytes, catalog: ReagentCatalog) -> ReactionRule:
    reader = _Reader(data)
    rule_id = reader.string()
    ingredients = tuple(ReagentIngredient(r, a) for r, a in _read_amounts(reader, catalog))
    results = tuple(ReagentQuantity(r, a) for r, a in _read_amounts(reader, catalog))
    (count,) = reader.unpack("I")
    conditions = tuple(_read_condition(reader, catalog) for _ in range(count))
    flags, energy = reader.unpack("Id")
    rate = _read_equation(reader, catalog)
    if not reader.exhausted:
        raise ValueError("Trailing bytes after reaction data")
    return ReactionRule(
        id=rule_id,
        ingredients=ingredients,
        results=results,
        conditions=conditions,
        flags=ReactionFlag(flags),
        energy=energy,
        rate=rate,
    )


def encode_electrolysis(rule: ElectrolysisRule) -> bytes:
    writer = _Writer()
    writer.string(rule.id)
    _write_amounts(writer, ((i.reagent, i.amount) for i in rule.ingredients))
    writer.pack("I", len(rule.results))
    for result in rule.results:
        writer.pack("?", result.negative)
        writer.string(result.quantity.reagent.id)
        writer.pack("i", result.quantity.amount)
    writer.pack("dd", rule.minimum_potential, rule.rate_constant)
    return writer.getvalue()


def decode_electrolysis(data: bytes, catalog: ReagentCatalog) -> ElectrolysisRule:
    reader = _Reader(data)
    rule_id = reader.string()
    ingredients = tuple(ReagentIngredient(r, a) for r, a in _read_amounts(reader, catalog))
    (count,) = reader.unpack("I")
    results = []
    for _ in range(count):
        (negative,) = reader.unpack("?")
        reagent = _reagent(catalog, reader.string())
        (amount,) = reader.unpack("i")
        results.append(ElectrolysisResult(negative, ReagentQuantity(reagent, amount)))
    minimum_potential, rate_constant = reader.unpack("dd")
    if not reader.exhausted:
        raise ValueError("Trailing bytes after electrolysis data")
    return ElectrolysisRule(
        id=rule_id,
        ingredients=ingredients,
        results=tuple(results),
        minimum_potential=minimum_potential,
        rate_constant=rate_constant,
    )

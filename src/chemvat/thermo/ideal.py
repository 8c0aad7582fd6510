"""Ideal gas helpers for container headspace."""

from __future__ import annotations

from chemvat.constants import GAS_CONSTANT


def static_pressure(gas_amount: int, absolute_temperature: float, volume: float) -> float:
    """Pressure of ``gas_amount`` in ``volume`` (p = nRT / V)."""
    if volume <= 0:
        return 0.0
    return gas_amount * GAS_CONSTANT * absolute_temperature / volume


def amount_at_pressure(pressure: float, absolute_temperature: float, volume: float) -> int:
    """Gas amount that fills ``volume`` at ``pressure`` (n = pV / RT)."""
    if absolute_temperature <= 0:
        return 0
    return int(pressure * volume / (GAS_CONSTANT * absolute_temperature))


def equalizing_amount(
    gas_amount: int, free_volume: int, other_gas_amount: int, other_free_volume: int
) -> int:
    """Amount to move so both headspaces reach the same gas density.

    Solves (g1 - n) / f1 = (g2 + n) / f2 for n; negative results mean gas
    should flow the other way.
    """
    total_volume = free_volume + other_free_volume
    if total_volume <= 0:
        return 0
    return int(
        (gas_amount * other_free_volume - other_gas_amount * free_volume) / total_volume
    )

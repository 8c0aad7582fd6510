"""Physical and simulation constants.

Amounts are integers in thousandths of a mole, temperatures in Celsius,
energies in J.
"""

from __future__ import annotations

CELSIUS_OFFSET = 273.15
ABSOLUTE_ZERO = -CELSIUS_OFFSET

# Conversion from integer amount units to moles.
AMOUNT_SCALE = 0.001

DEFAULT_TEMPERATURE = 22.0

# One block worth of reagent, in amount units.
BLOCK_MOLE_AMOUNT = 4000
# Fluid storages count 81000 droplets per block.
FLUID_BLOCK_UNITS = 81000
FLUID_MOLE_RATIO = FLUID_BLOCK_UNITS / BLOCK_MOLE_AMOUNT

# Gas model, scaled so that one amount unit per free volume unit at
# ambient temperature is roughly one atmosphere.
GAS_CONSTANT = 0.003389
ATMOSPHERE_TEMPERATURE = DEFAULT_TEMPERATURE
ATMOSPHERE_ABSOLUTE_TEMPERATURE = ATMOSPHERE_TEMPERATURE + CELSIUS_OFFSET
ATMOSPHERIC_PRESSURE = GAS_CONSTANT * ATMOSPHERE_ABSOLUTE_TEMPERATURE
# Extra headspace an open container shares with the outside air.
OPEN_HEADSPACE = 2000

# Electrolysis rate per unit of electrode potential.
ELECTROLYSIS_RATE_CONSTANT = 0.5

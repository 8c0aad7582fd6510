from .base import MixtureConditions
from .ideal import amount_at_pressure, equalizing_amount, static_pressure

__all__ = ["MixtureConditions", "amount_at_pressure", "equalizing_amount", "static_pressure"]

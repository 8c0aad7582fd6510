"""ChemVat core package."""

from chemvat.catalog import ReagentCatalog, default_catalog
from chemvat.mixture import ConstantMixture, ReagentMixture, atmosphere
from chemvat.models import EMPTY, Reagent, ReagentIngredient, ReagentQuantity, ReagentState
from chemvat.reactions import ElectrolysisRule, ReactionFlag, ReactionRule
from chemvat.reactors import ChemicalVat, VatConfiguration, run_vats
from chemvat.transaction import Transaction
from chemvat.volume import VolumeMixture

__all__ = [
    "EMPTY",
    "ChemicalVat",
    "ConstantMixture",
    "ElectrolysisRule",
    "ReactionFlag",
    "ReactionRule",
    "Reagent",
    "ReagentCatalog",
    "ReagentIngredient",
    "ReagentMixture",
    "ReagentQuantity",
    "ReagentState",
    "Transaction",
    "VatConfiguration",
    "VolumeMixture",
    "atmosphere",
    "default_catalog",
    "run_vats",
]

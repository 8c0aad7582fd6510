"""Persistence helpers for ChemVat."""

from chemvat.persistence.sqlite_store import (
    connect,
    create_project,
    ensure_schema,
    load_mixture,
    load_profile,
    load_reaction_definitions,
    save_mixture,
    save_profile,
    save_reactions,
    save_reagents,
    save_run,
)

__all__ = [
    "connect",
    "create_project",
    "ensure_schema",
    "load_mixture",
    "load_profile",
    "load_reaction_definitions",
    "save_mixture",
    "save_profile",
    "save_reactions",
    "save_reagents",
    "save_run",
]

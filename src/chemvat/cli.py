"""Command-line entrypoints for ChemVat."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Annotated, Any, Dict, List, Sequence

import numpy as np
import typer

from chemvat.catalog import ReagentCatalog, default_catalog
from chemvat.codec import (
    default_electrolysis,
    default_reactions,
    load_electrolysis,
    load_reactions,
    reaction_to_json,
)
from chemvat.models import EMPTY, ReagentQuantity
from chemvat.persistence import sqlite_store
from chemvat.reactions import ElectrolysisRule, ReactionRule
from chemvat.reactors import (
    HEATER_PRESETS,
    ChemicalVat,
    Direction,
    VatConfiguration,
    VatProfile,
    run_vats,
)

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output.")] = False,
) -> None:
    """Reagent mixture and reaction simulator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_heater(data: Any) -> Dict[str, float]:
    if data is None:
        return {}
    if isinstance(data, str):
        try:
            power, temperature = HEATER_PRESETS[data.lower()]
        except KeyError:
            raise ValueError(f"Unknown heater level: {data}") from None
    else:
        power, temperature = float(data["power"]), float(data["temperature"])
    return {"heater_power": power, "heater_temperature": temperature}


def _parse_configuration(data: Dict[str, Any]) -> VatConfiguration:
    return VatConfiguration(
        volume=int(data.get("volume", VatConfiguration.volume)),
        open=bool(data.get("open", False)),
        catalyzer=float(data.get("catalyzer", 0.0)),
        electrode_potential=float(data.get("electrode_potential", 0.0)),
        ambient_temperature=float(
            data.get("ambient_temperature", VatConfiguration.ambient_temperature)
        ),
        **_parse_heater(data.get("heater")),
    )


def _parse_direction(name: str) -> Direction:
    try:
        return Direction[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown direction: {name}") from None


def _parse_vat(
    data: Dict[str, Any],
    catalog: ReagentCatalog,
    rules: Sequence[ReactionRule],
    electrolysis: Sequence[ElectrolysisRule],
    rng: np.random.Generator,
) -> ChemicalVat:
    vat = ChemicalVat(
        catalog,
        rules,
        _parse_configuration(data),
        electrolysis=electrolysis,
        rng=rng,
        name=data.get("name", "vat"),
    )
    for entry in data.get("contents", []):
        reagent = catalog.lookup(entry["reagent"])
        if reagent == EMPTY:
            raise ValueError(f"Unknown reagent: {entry['reagent']}")
        quantity = ReagentQuantity(
            reagent, int(entry["amount"]), float(entry.get("temperature", 22.0))
        )
        vat.mixture.force_add(quantity)
    vat.mixture.burning = bool(data.get("burning", False))
    return vat


def _load_rules(
    reactions_file: Path | None, catalog: ReagentCatalog
) -> tuple[List[ReactionRule], List[ElectrolysisRule]]:
    if reactions_file is None:
        return default_reactions(catalog), default_electrolysis(catalog)
    return load_reactions(reactions_file, catalog), load_electrolysis(reactions_file, catalog)


def _payload(profiles: Sequence[VatProfile]) -> Dict[str, Any]:
    return {
        "time": profiles[0].time.tolist() if profiles else [],
        "vats": {profile.name: profile.to_payload() for profile in profiles},
    }


def _persist(
    project_file: Path,
    name: str,
    notes: str,
    catalog: ReagentCatalog,
    rules: Sequence[ReactionRule],
    vats: Sequence[ChemicalVat],
    profiles: Sequence[VatProfile],
    settings: Dict[str, Any],
    duration_ms: int,
) -> int:
    connection = sqlite_store.connect(project_file)
    try:
        sqlite_store.ensure_schema(connection)
        project_id = sqlite_store.create_project(connection, name=name, notes=notes)
        sqlite_store.save_reagents(connection, project_id, catalog)
        sqlite_store.save_reactions(connection, project_id, rules)
        run_id = sqlite_store.save_run(
            connection,
            project_id=project_id,
            scenario={"vats": [vat.to_dict() for vat in vats]},
            settings=settings,
            summary={"final": {profile.name: profile.final() for profile in profiles}},
            duration_ms=duration_ms,
        )
        for vat, profile in zip(vats, profiles):
            series: Dict[str, Sequence[float]] = {
                f"{profile.name}.T": profile.temperature,
                f"{profile.name}.fill_level": profile.fill_level,
                f"{profile.name}.pressure": profile.pressure,
            }
            units: Dict[str, str | None] = {f"{profile.name}.T": "C"}
            for reagent_id, values in profile.amounts.items():
                series[f"{profile.name}.{reagent_id}"] = values
                units[f"{profile.name}.{reagent_id}"] = "mmol"
            sqlite_store.save_profile(
                connection, run_id=run_id, x_values=profile.time, series=series, units=units
            )
            sqlite_store.save_mixture(connection, run_id, vat.name, vat.mixture)
    finally:
        connection.close()
    return run_id


def _echo(payload: Dict[str, Any], output: Path | None) -> None:
    json_output = json.dumps(payload, indent=2)
    typer.echo(json_output)
    if output:
        with open(output, "w") as f:
            f.write(json_output)


@app.command()
def run(
    config_file: Annotated[
        Path, typer.Argument(help="Path to JSON scenario file.")
    ],
    output: Annotated[
        Path | None, typer.Option(help="Path to save output JSON.")
    ] = None,
    project_file: Annotated[
        Path | None,
        typer.Option(help="Optional .cvproj file to persist results."),
    ] = None,
) -> None:
    """Run a vat simulation from a scenario file."""
    with open(config_file, "r") as f:
        config = json.load(f)

    catalog = default_catalog()
    reactions_file = config.get("reactions")
    if reactions_file is not None:
        reactions_file = (config_file.parent / reactions_file).resolve()
    rules, electrolysis = _load_rules(reactions_file, catalog)
    rng = np.random.default_rng(config.get("seed"))

    vats = [_parse_vat(v, catalog, rules, electrolysis, rng) for v in config["vats"]]
    by_name = {vat.name: vat for vat in vats}
    if len(by_name) != len(vats):
        raise ValueError("Vat names must be unique")
    for link in config.get("connections", []):
        by_name[link["from"]].connect(_parse_direction(link["direction"]), by_name[link["to"]])

    ticks = int(config.get("ticks", 200))
    sample_every = int(config.get("sample_every", 1))
    started = time.perf_counter()
    profiles = run_vats(vats, ticks, sample_every)
    duration_ms = int((time.perf_counter() - started) * 1000.0)
    logger.info("Simulated %d ticks of %d vats in %d ms", ticks, len(vats), duration_ms)

    payload = _payload(profiles)
    if project_file is not None:
        payload["run_id"] = _persist(
            project_file,
            name=config.get("name", config_file.stem),
            notes=f"Scenario {config_file.name}",
            catalog=catalog,
            rules=rules,
            vats=vats,
            profiles=profiles,
            settings={"ticks": ticks, "sample_every": sample_every, "seed": config.get("seed")},
            duration_ms=duration_ms,
        )
    _echo(payload, output)


@app.command()
def combustion_demo(
    ticks: Annotated[int, typer.Option(help="Number of ticks to simulate.")] = 400,
    sample_every: Annotated[int, typer.Option(help="Ticks between samples.")] = 20,
    seed: Annotated[int, typer.Option(help="Random seed for reaction order.")] = 0,
    project_file: Annotated[
        Path | None,
        typer.Option(help="Optional .cvproj file to persist results."),
    ] = None,
) -> None:
    """Burn sulfur in a closed vat of air heated by a kindled burner."""
    catalog = default_catalog()
    rules = default_reactions(catalog)
    power, temperature = HEATER_PRESETS["kindled"]
    config = VatConfiguration(heater_power=power, heater_temperature=temperature)
    vat = ChemicalVat(
        catalog, rules, config, rng=np.random.default_rng(seed), name="burner"
    )
    vat.mixture.force_add(ReagentQuantity(catalog.lookup("sulfur"), 2000, 240.0))
    vat.mixture.force_add(ReagentQuantity(catalog.lookup("nitrogen"), 24000, 240.0))
    vat.mixture.force_add(ReagentQuantity(catalog.lookup("oxygen"), 8000, 240.0))

    started = time.perf_counter()
    profiles = run_vats([vat], ticks, sample_every)
    duration_ms = int((time.perf_counter() - started) * 1000.0)

    payload = _payload(profiles)
    if project_file is not None:
        payload["run_id"] = _persist(
            project_file,
            name="Combustion demo",
            notes="Autogenerated from ChemVat CLI demo.",
            catalog=catalog,
            rules=rules,
            vats=[vat],
            profiles=profiles,
            settings={"ticks": ticks, "sample_every": sample_every, "seed": seed},
            duration_ms=duration_ms,
        )
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def reactions(
    reactions_file: Annotated[
        Path | None,
        typer.Argument(help="Reaction definition JSON; the bundled rules when omitted."),
    ] = None,
) -> None:
    """Validate a reaction file and print the parsed rules."""
    catalog = default_catalog()
    rules, electrolysis = _load_rules(reactions_file, catalog)
    payload = {
        "reactions": [reaction_to_json(rule) for rule in rules],
        "electrolysis": [rule.id for rule in electrolysis],
    }
    typer.echo(json.dumps(payload, indent=2))

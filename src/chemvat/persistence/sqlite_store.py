"""SQLite persistence helpers for ChemVat projects.

A ``.cvproj`` file holds projects, the reagents and reaction rules they
were simulated with, and runs. Each run stores its scenario, per-tick samples
in long format (one row per time, series) and the final mixture of every vat.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from chemvat.catalog import ReagentCatalog
from chemvat.codec import reaction_to_json
from chemvat.mixture import ReagentMixture
from chemvat.reactions import ReactionRule

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS project (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL,
  created_utc TEXT,
  notes TEXT
);
CREATE TABLE IF NOT EXISTS reagent (
  project_id INTEGER NOT NULL REFERENCES project(id),
  reagent TEXT NOT NULL,
  melting_point REAL,
  boiling_point REAL,
  heat_capacity REAL,
  fixed_state TEXT,
  PRIMARY KEY (project_id, reagent)
);
CREATE TABLE IF NOT EXISTS rule (
  project_id INTEGER NOT NULL REFERENCES project(id),
  position INTEGER NOT NULL,
  rule TEXT NOT NULL,
  definition JSON,
  PRIMARY KEY (project_id, rule)
);
CREATE TABLE IF NOT EXISTS run (
  id INTEGER PRIMARY KEY,
  project_id INTEGER NOT NULL REFERENCES project(id),
  scenario JSON,
  settings JSON,
  summary JSON,
  started_utc TEXT,
  duration_ms INTEGER
);
CREATE TABLE IF NOT EXISTS sample (
  run_id INTEGER NOT NULL REFERENCES run(id),
  time REAL NOT NULL,
  series TEXT NOT NULL,
  value REAL,
  unit TEXT,
  PRIMARY KEY (run_id, time, series)
);
CREATE TABLE IF NOT EXISTS vat_state (
  run_id INTEGER NOT NULL REFERENCES run(id),
  vat TEXT NOT NULL,
  mixture JSON,
  PRIMARY KEY (run_id, vat)
);
"""


def connect(project_file: str | Path) -> sqlite3.Connection:
    """Open a .cvproj project, creating the file and its folder if needed."""
    path = Path(project_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path)
    connection.execute("PRAGMA foreign_keys = ON;")
    return connection


def ensure_schema(connection: sqlite3.Connection) -> None:
    with connection:
        connection.executescript(SCHEMA_SQL)


def create_project(
    connection: sqlite3.Connection,
    name: str,
    notes: str | None = None,
    created_utc: str | None = None,
) -> int:
    """Insert a project row and return its id."""
    with connection:
        cursor = connection.execute(
            "INSERT INTO project (name, created_utc, notes) VALUES (?, ?, ?)",
            (name, created_utc or _utc_now(), notes),
        )
    return int(cursor.lastrowid)


def save_reagents(
    connection: sqlite3.Connection, project_id: int, catalog: ReagentCatalog
) -> None:
    """Record the properties of every reagent in ``catalog``."""
    rows = (
        (
            project_id,
            reagent.id,
            reagent.melting_point,
            reagent.boiling_point,
            reagent.heat_capacity,
            None if reagent.fixed_state is None else reagent.fixed_state.value,
        )
        for reagent in catalog
    )
    with connection:
        connection.executemany(
            "INSERT OR REPLACE INTO reagent (project_id, reagent, melting_point,"
            " boiling_point, heat_capacity, fixed_state) VALUES (?, ?, ?, ?, ?, ?)",
            rows,
        )


def save_reactions(
    connection: sqlite3.Connection, project_id: int, rules: Iterable[ReactionRule]
) -> None:
    rows = (
        (project_id, position, rule.id, _json_dumps(reaction_to_json(rule)))
        for position, rule in enumerate(rules)
    )
    with connection:
        connection.executemany(
            "INSERT OR REPLACE INTO rule (project_id, position, rule, definition)"
            " VALUES (?, ?, ?, ?)",
            rows,
        )


def load_reaction_definitions(
    connection: sqlite3.Connection, project_id: int
) -> list[dict[str, Any]]:
    """Reaction JSON definitions of a project, in the order they were saved."""
    cursor = connection.execute(
        "SELECT definition FROM rule WHERE project_id = ? ORDER BY position", (project_id,)
    )
    return [json.loads(definition) for (definition,) in cursor]


def save_run(
    connection: sqlite3.Connection,
    project_id: int,
    scenario: Mapping[str, Any],
    settings: Mapping[str, Any],
    summary: Mapping[str, Any],
    started_utc: str | None = None,
    duration_ms: int | None = None,
) -> int:
    """Insert a run row and return its id."""
    with connection:
        cursor = connection.execute(
            "INSERT INTO run (project_id, scenario, settings, summary, started_utc,"
            " duration_ms) VALUES (?, ?, ?, ?, ?, ?)",
            (
                project_id,
                _json_dumps(scenario),
                _json_dumps(settings),
                _json_dumps(summary),
                started_utc or _utc_now(),
                duration_ms,
            ),
        )
    return int(cursor.lastrowid)


def save_profile(
    connection: sqlite3.Connection,
    run_id: int,
    x_values: Sequence[float],
    series: Mapping[str, Sequence[float]],
    units: Mapping[str, str | None] | None = None,
) -> None:
    """Store sampled series of a run; every series is aligned with ``x_values``."""
    units = units or {}
    rows = [
        (run_id, float(time), name, float(value), units.get(name))
        for name, values in series.items()
        for time, value in zip(x_values, values)
    ]
    with connection:
        connection.executemany(
            "INSERT INTO sample (run_id, time, series, value, unit) VALUES (?, ?, ?, ?, ?)",
            rows,
        )


def load_profile(
    connection: sqlite3.Connection, run_id: int
) -> tuple[list[float], dict[str, list[float]]]:
    """Return the sample times of a run and the values of each series."""
    times: list[float] = []
    series: dict[str, list[float]] = {}
    cursor = connection.execute(
        "SELECT time, series, value FROM sample WHERE run_id = ? ORDER BY time, rowid",
        (run_id,),
    )
    for time, name, value in cursor:
        if not times or times[-1] != time:
            times.append(time)
        series.setdefault(name, []).append(value)
    return times, series


def save_mixture(
    connection: sqlite3.Connection, run_id: int, vat: str, mixture: ReagentMixture
) -> None:
    with connection:
        connection.execute(
            "INSERT OR REPLACE INTO vat_state (run_id, vat, mixture) VALUES (?, ?, ?)",
            (run_id, vat, _json_dumps(mixture.to_dict())),
        )


def load_mixture(
    connection: sqlite3.Connection,
    run_id: int,
    vat: str,
    catalog: ReagentCatalog,
    mixture: ReagentMixture | None = None,
) -> ReagentMixture | None:
    """Read a stored vat mixture into ``mixture`` (a new one when not given).

    Returns ``None`` when nothing was stored for the vat.
    """
    row = connection.execute(
        "SELECT mixture FROM vat_state WHERE run_id = ? AND vat = ?", (run_id, vat)
    ).fetchone()
    if row is None:
        return None
    if mixture is None:
        mixture = ReagentMixture()
    mixture.load(json.loads(row[0]), catalog)
    return mixture


def _json_dumps(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()

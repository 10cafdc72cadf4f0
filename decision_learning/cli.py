"""
Decision learning engine — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action against the SQLite store.
  5. Report result to stdout.

Install and run::

    pip install -e .
    decision-learning --help
    decision-learning init-db
    decision-learning validate-config
    decision-learning add-decision --file decision.json
    decision-learning approve 3f2c... --approved --adjustment 0.5
    decision-learning list-decisions --objective deploy --limit 20
    decision-learning show-weights --source-type signal
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="decision-learning",
    help="Approval-driven learning weights for decision ranking.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from decision_learning.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from decision_learning.utils.logging import configure_logging
    configure_logging(config.logging)


def _connect(config, db_path: Optional[str]):
    from decision_learning.db.connection import get_connection

    return get_connection(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    )


def _fail(exc) -> None:
    """Print a domain error with its HTTP-class status and exit 1."""
    typer.echo(f"[ERROR] ({exc.http_status} {exc.code}) {exc}", err=True)
    for detail in getattr(exc, "errors", []):
        typer.echo(f"  - {detail['field']}: {detail['message']}", err=True)
    raise typer.Exit(code=1)


_DB_PATH_OPTION = typer.Option(None, "--db-path", help="Override DB path from config.")
_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = _DB_PATH_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    Also runs pending schema migrations.
    """
    from decision_learning.db.migrations import run_migrations
    from decision_learning.db.schema import ALL_TABLE_NAMES, apply_schema
    from decision_learning.errors import LearningError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    try:
        with _connect(config, db_path) as conn:
            apply_schema(conn)
            migrations_applied = run_migrations(conn)
    except LearningError as exc:
        _fail(exc)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(False, "--full", help="Print full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Learning rate:    {config.learning.learning_rate}")
    typer.echo(f"  Max page size:    {config.listing.max_limit}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("add-decision")
def add_decision(
    decision_file: str = typer.Option(
        ..., "--file", "-f", help="JSON file holding one decision object or an array of them."
    ),
    db_path: Optional[str] = _DB_PATH_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Store one or more decision records. Existing ids are rejected."""
    from pydantic import ValidationError as PydanticValidationError

    from decision_learning.db.repositories.decision_repo import DecisionRepository
    from decision_learning.errors import LearningError
    from decision_learning.models.decision import DecisionRecord

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(decision_file)
    if not path.exists():
        typer.echo(f"[ERROR] Decision file not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] Invalid JSON in {path}: {exc}", err=True)
        raise typer.Exit(code=1)

    items = raw if isinstance(raw, list) else [raw]
    try:
        decisions = [DecisionRecord.model_validate(item) for item in items]
    except PydanticValidationError as exc:
        typer.echo(f"[ERROR] Decision validation failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    try:
        with _connect(config, db_path) as conn:
            repo = DecisionRepository(conn)
            for decision in decisions:
                repo.insert(decision)
                typer.echo(
                    f"  Stored {decision.id} [{decision.recommendation_type.value}] "
                    f"{decision.objective[:60]}"
                )
    except LearningError as exc:
        _fail(exc)

    typer.echo(f"[OK] {len(decisions)} decision(s) stored.")


@app.command("approve")
def approve(
    decision_id: str = typer.Argument(..., help="Id of the decision to approve or reject."),
    approved: bool = typer.Option(
        True, "--approved/--rejected", help="Record an approval (default) or a rejection."
    ),
    adjustment: Optional[float] = typer.Option(
        None, "--adjustment", "-a", help="Confidence adjustment in [-1, 1]."
    ),
    timestamp: Optional[str] = typer.Option(
        None, "--timestamp", help="Event time (ISO-8601). Defaults to now."
    ),
    db_path: Optional[str] = _DB_PATH_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Record an approval event and apply its learning to the Weight Ledger."""
    from decision_learning.errors import LearningError
    from decision_learning.learning.recorder import ApprovalRecorder

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        with _connect(config, db_path) as conn:
            recorder = ApprovalRecorder(conn, learning=config.learning)
            result = recorder.record_approval(
                decision_id,
                approved=approved,
                confidence_adjustment=adjustment,
                timestamp=timestamp,
            )
    except LearningError as exc:
        _fail(exc)

    typer.echo(json.dumps(result.to_response(), indent=2))
    if result.weights_updated < result.edges_total:
        typer.echo(
            f"[WARN] {result.edges_total - result.weights_updated} edge update(s) failed; "
            "see log for replay details.",
            err=True,
        )


@app.command("list-decisions")
def list_decisions_cmd(
    objective: Optional[str] = typer.Option(
        None, "--objective", help="Case-insensitive substring filter on the objective."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Page size (clamped to [1, max])."),
    offset: int = typer.Option(0, "--offset", help="Rows to skip (clamped to >= 0)."),
    as_json: bool = typer.Option(False, "--json", help="Print {data,total,limit,offset} JSON."),
    db_path: Optional[str] = _DB_PATH_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """List decisions ranked by accumulated approval weight."""
    from decision_learning.errors import LearningError
    from decision_learning.learning.ranking import list_decisions
    from decision_learning.reporting.formatters import format_decision_page

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        with _connect(config, db_path) as conn:
            page = list_decisions(
                conn, objective=objective, limit=limit, offset=offset, listing=config.listing
            )
    except LearningError as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps(page.to_response(), indent=2))
    else:
        typer.echo(format_decision_page(page))


@app.command("show-weights")
def show_weights(
    source_type: Optional[str] = typer.Option(
        None, "--source-type", help="Restrict to decision, signal or objective."
    ),
    source_id: Optional[str] = typer.Option(
        None, "--source-id", help="Show every edge leaving this source (needs --source-type)."
    ),
    limit: int = typer.Option(20, "--limit", help="Maximum edges to show."),
    db_path: Optional[str] = _DB_PATH_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Print the strongest Weight Ledger edges as a table."""
    from decision_learning.db.repositories.weight_repo import LearningWeightRepository
    from decision_learning.errors import LearningError
    from decision_learning.reporting.formatters import format_weights_table
    from decision_learning.taxonomy.recommendation_taxonomy import SourceType

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    parsed_type: Optional[SourceType] = None
    if source_type is not None:
        try:
            parsed_type = SourceType(source_type.lower())
        except ValueError:
            valid = ", ".join(t.value for t in SourceType)
            typer.echo(f"[ERROR] --source-type must be one of: {valid}", err=True)
            raise typer.Exit(code=1)
    if source_id is not None and parsed_type is None:
        typer.echo("[ERROR] --source-id requires --source-type.", err=True)
        raise typer.Exit(code=1)

    try:
        with _connect(config, db_path) as conn:
            repo = LearningWeightRepository(conn)
            if source_id is not None:
                weights = repo.list_for_source(parsed_type, source_id)[:limit]
            else:
                weights = repo.top_weights(parsed_type, limit=limit)
            total = repo.count()
    except LearningError as exc:
        _fail(exc)

    typer.echo(f"  Weight Ledger: {total} edge(s)")
    typer.echo(format_weights_table(weights))


if __name__ == "__main__":
    app()

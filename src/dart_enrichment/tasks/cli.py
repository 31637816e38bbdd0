# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART enrichment CLI: operational commands.

Commands:
    registry sync          Populate the registry (no-op when already populated).
    registry lookup CODE   Show the registry record for an 8-digit entity code.
    registry search NAME   Substring search over legal names.
    enrich CODE            Run the partner-company enrichment for one entity.
    db create-schema       Create missing tables (development convenience).

Environment:
    DATABASE_URL           Async SQLAlchemy URL.
    DART_API_KEY           OpenDART API key.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from typing import Any, TypeVar

import typer

from dart_enrichment.bootstrap import Runtime, build_runtime
from dart_enrichment.config.settings import get_settings
from dart_enrichment.domain.entities.partner_company_event import PartnerCompanyEvent
from dart_enrichment.domain.exceptions.dart import DartError, DartNotFound
from dart_enrichment.infrastructure.database.session import (
    create_schema,
    dispose_engine,
    get_engine,
    init_engine_and_sessionmaker,
)
from dart_enrichment.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
    set_log_context,
)

configure_root_logging()
log = get_json_logger(__name__)

T = TypeVar("T")

app = typer.Typer(add_completion=False, no_args_is_help=True)
registry_app = typer.Typer(no_args_is_help=True)
db_app = typer.Typer(no_args_is_help=True)
app.add_typer(registry_app, name="registry")
app.add_typer(db_app, name="db")


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _with_runtime(fn: Callable[[Runtime], Awaitable[T]]) -> T:
    """Build a runtime (no consumer, no scheduler), run ``fn``, tear down."""

    async def _run() -> T:
        runtime = build_runtime()
        try:
            return await fn(runtime)
        finally:
            await runtime.aclose()

    return asyncio.run(_run())


@registry_app.command("sync")
def registry_sync() -> None:
    """Download and store the registry if the local table is empty."""
    set_log_context(correlation_id="cli-registry-sync")
    try:
        result = _with_runtime(lambda rt: rt.sync_registry.execute("cli"))
    except DartError as exc:
        log.error("registry_sync.failed", extra={"error_code": exc.code, "reason": exc.message})
        typer.echo(f"Registry sync failed [{exc.code}]: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc
    _echo({**asdict(result), "outcome": result.outcome})


@registry_app.command("lookup")
def registry_lookup(
    entity_code: str = typer.Argument(..., help="8-digit DART entity code."),  # noqa: B008
) -> None:
    """Print the registry record for ``entity_code``."""
    try:
        record = _with_runtime(lambda rt: rt.registry_lookup.find_by_entity_code(entity_code))
    except DartNotFound as exc:
        typer.echo(f"Not found: {entity_code}", err=True)
        raise typer.Exit(code=1) from exc
    _echo(asdict(record))


@registry_app.command("search")
def registry_search(
    name: str = typer.Argument(..., help="Legal-name fragment."),  # noqa: B008
    listed_only: bool = typer.Option(False, help="Only listed companies."),  # noqa: B008
    limit: int = typer.Option(20, min=1, max=100, help="Maximum rows."),  # noqa: B008
) -> None:
    """Search the registry by legal name."""
    records = _with_runtime(
        lambda rt: rt.registry_lookup.search_by_name(name, listed_only=listed_only, limit=limit)
    )
    _echo([asdict(r) for r in records])


@app.command("enrich")
def enrich(
    entity_code: str = typer.Argument(..., help="8-digit DART entity code."),  # noqa: B008
) -> None:
    """Run the enrichment pipeline for one entity, as if an event had arrived."""
    event = PartnerCompanyEvent.from_payload({"id": "cli", "corpCode": entity_code})
    set_log_context(correlation_id="cli-enrich", event_id=event.event_id)
    report = _with_runtime(lambda rt: rt.enrich_partner.execute(event))
    _echo({**asdict(report), "statements_failed": report.statements_failed})


@db_app.command("create-schema")
def db_create_schema() -> None:
    """Create every missing table in ``DATABASE_URL``."""

    async def _run() -> None:
        init_engine_and_sessionmaker(get_settings())
        try:
            await create_schema(get_engine())
        finally:
            await dispose_engine()

    asyncio.run(_run())
    log.info("db.schema_created")


if __name__ == "__main__":
    app()

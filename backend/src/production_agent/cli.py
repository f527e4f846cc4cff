"""Typer CLI for asking questions and inspecting generated queries."""
from __future__ import annotations

import json
from collections.abc import Callable

import typer

from .exceptions import AgentError
from .graph import initialize_agent
from .query_engine import QueryEngine

app = typer.Typer(help="CLI for the production data agent")


@app.command()
def ask(question: str) -> None:
    """Answer a question against the production database."""

    agent = _start_agent()
    typer.echo(agent(question))


@app.command()
def explain(question: str) -> None:
    """Show how a question is classified and translated, without querying."""

    plan = QueryEngine().plan(question)
    typer.echo(json.dumps(plan.describe(), indent=2, default=str))


@app.command()
def check() -> None:
    """Validate configuration and connectivity the way the server does at start-up."""

    _start_agent()
    typer.echo("Configuration, MongoDB and language model are ready")


def _start_agent() -> Callable[[str], str]:
    try:
        return initialize_agent()
    except AgentError as exc:
        typer.echo(f"Start-up check failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()

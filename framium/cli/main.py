"""
CLI interface for Framium.

Operator access to the database, plans, user plans and usage.
"""

import sqlite3
import sys
from dataclasses import replace
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from framium.config.loader import FramiumConfig, load_config
from framium.core.logging import configure_logging
from framium.demo.seed_demo_data import seed_demo_users
from framium.storage.db import initialize_schema
from framium.storage.ledger import UsageLedger
from framium.storage.users import UserRepository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _config(ctx: typer.Context) -> FramiumConfig:
    return ctx.obj or FramiumConfig.default()


def _format_currency(amount) -> str:
    """Format currency with six decimal places, matching ledger precision."""
    return f"${float(amount):,.6f}"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    database: Optional[str] = typer.Option(
        None,
        "--database",
        "-d",
        help="SQLite database path (overrides config)"
    ),
):
    """Framium CLI."""
    try:
        cfg = load_config(config) if config else FramiumConfig.default()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    if database:
        cfg = replace(cfg, database=database)
    ctx.obj = cfg

    if ctx.invoked_subcommand is None:
        console.print("Framium - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the Framium database."""
    try:
        initialize_schema(_config(ctx).database)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def status(ctx: typer.Context):
    """Show configuration and provider key status."""
    cfg = _config(ctx)
    keys = cfg.api_keys
    console.print(f"Database: {cfg.database}")
    console.print(f"Provider timeout: {cfg.provider_timeout_seconds:g}s")
    for name, value in (("openai", keys.openai), ("anthropic", keys.anthropic), ("gemini", keys.gemini)):
        marker = "[green]configured[/]" if value else "[yellow]missing[/]"
        console.print(f"{name}: {marker}")


@app.command()
def plans(ctx: typer.Context):
    """List plan tiers with their quotas and models."""
    catalog = _config(ctx).build_plan_catalog()

    table = Table(title="Framium Plans")
    table.add_column("Plan")
    table.add_column("Monthly tokens", justify="right")
    table.add_column("Models", justify="right")
    for plan in catalog.plans():
        table.add_row(plan.name, f"{plan.monthly_token_quota:,}", str(len(plan.allowed_models)))
    console.print(table)


@app.command()
def models(ctx: typer.Context):
    """List the model catalog."""
    cfg = _config(ctx)
    catalog = cfg.build_catalog()
    rates = cfg.build_rate_table(catalog)

    table = Table(title="Framium Models")
    table.add_column("Model")
    table.add_column("Provider")
    table.add_column("Min plan")
    table.add_column("Max output", justify="right")
    table.add_column("USD / 1K tokens", justify="right")
    for model in sorted(catalog, key=lambda m: (m.min_tier.rank, m.id)):
        table.add_row(
            model.id,
            model.provider,
            model.min_tier.name,
            str(model.max_output_tokens),
            str(rates.rate_for(model.id)),
        )
    console.print(table)


@app.command("create-user")
def create_user(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="Email address"),
    name: str = typer.Argument(..., help="Display name"),
    plan: str = typer.Option("BASIC", "--plan", "-p", help="Initial plan tier"),
):
    """Create a user."""
    try:
        user = UserRepository(_config(ctx).database).create_user(email, name, plan)
    except (ValueError, sqlite3.Error) as e:
        console.print(f"[red]Error creating user:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Created user {user.id} ({user.email}) on {user.plan}")
    sys.exit(EXIT_CODE_PASS)


@app.command("set-plan")
def set_plan(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="User id"),
    plan: str = typer.Argument(..., help="New plan tier"),
):
    """Change a user's plan."""
    try:
        updated = UserRepository(_config(ctx).database).update_plan(user_id, plan)
    except (ValueError, sqlite3.Error) as e:
        console.print(f"[red]Error updating plan:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    if not updated:
        console.print(f"[red]User not found:[/] {user_id}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] {user_id} is now on {plan.upper()}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def usage(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="User id"),
):
    """Show a user's usage for the current month."""
    cfg = _config(ctx)
    try:
        user = UserRepository(cfg.database).get_user(user_id)
        if user is None:
            console.print(f"[red]User not found:[/] {user_id}")
            sys.exit(EXIT_CODE_FAIL)
        monthly = UsageLedger(cfg.database).monthly_usage(user_id)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]Database is not initialized[/]")
            console.print("Run `framium init` first.\n")
            sys.exit(EXIT_CODE_FAIL)
        raise

    plan = cfg.build_plan_catalog().plan(user.plan)
    remaining = max(plan.monthly_token_quota - monthly.total_tokens, 0)

    console.print(f"\n[bold]Usage for {user.email}[/bold] ({plan.name})")
    console.print("-" * 40)
    console.print(f"Tokens used: {monthly.total_tokens:,}")
    console.print(f"Monthly quota: {plan.monthly_token_quota:,}")
    console.print(f"Remaining: {remaining:,}")
    console.print(f"Cost: {_format_currency(monthly.total_cost)}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def seed(ctx: typer.Context):
    """Insert demo users, one per plan."""
    db_path = _config(ctx).database
    initialize_schema(db_path)
    users = seed_demo_users(db_path)

    table = Table(title="Demo users")
    table.add_column("Id")
    table.add_column("Email")
    table.add_column("Plan")
    for user in users:
        table.add_row(user.id, user.email, user.plan)
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
):
    """Run the HTTP API."""
    import uvicorn

    from framium.api.app import create_app

    cfg = _config(ctx)
    configure_logging(cfg.log_level, cfg.json_logs)
    uvicorn.run(create_app(cfg), host=host, port=port, log_config=None)


if __name__ == "__main__":
    app()

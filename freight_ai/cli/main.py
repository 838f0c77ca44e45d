"""
CLI interface for freight-ai.

Provides command-line access to the cost ledger, the query router, the
tool catalog and the assistant.
"""

import json
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from freight_ai.config.loader import AppConfig, load_app_config
from freight_ai.core.errors import FreightAIError
from freight_ai.core.providers import QueryType
from freight_ai.core.router import RouteRequest
from freight_ai.demo.seed_demo_data import seed_demo_data
from freight_ai.services import Services, build_services
from freight_ai.tools.definitions import TOOL_DEFINITIONS
from freight_ai.utils.logging import configure_logging

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

_state = {"config_path": None}


def _load_config() -> AppConfig:
    return load_app_config(_state["config_path"])


def _services() -> Services:
    return build_services(_load_config())


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${amount:,.2f}"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config file"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level"),
):
    """freight-ai CLI."""
    _state["config_path"] = config
    configure_logging(level=log_level)
    if ctx.invoked_subcommand is None:
        console.print("freight-ai - Use --help to see available commands")


@app.command()
def init():
    """Initialize the freight-ai database."""
    try:
        _services().initialize_storage()
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command("seed-demo")
def seed_demo():
    """Load a small demo data set."""
    try:
        services = _services()
        services.initialize_storage()
        count = seed_demo_data(services.domain, services.usage)
        console.print(f"[green]✓[/] Demo data inserted ({count} loads)")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error seeding demo data:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def costs(days: int = typer.Option(30, "--days", "-d", help="Window length in days")):
    """Show AI spend over a trailing window."""
    try:
        summary = _services().ledger.summary(days=days)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"\n[bold]AI Costs (last {days} days)[/bold]")
    console.print("-" * 40)
    console.print(f"Total cost: {_format_currency(summary.total_cost)}")
    console.print(f"Total calls: {summary.total_calls}")
    console.print(f"Success rate: {summary.success_rate:.1%}")
    console.print(f"Average latency: {summary.avg_latency} ms")

    if summary.by_model:
        table = Table(title="By model")
        table.add_column("Model")
        table.add_column("Calls", justify="right")
        table.add_column("Cost", justify="right")
        table.add_column("Avg latency", justify="right")
        for row in sorted(summary.by_model, key=lambda r: r["cost"], reverse=True):
            table.add_row(row["model"], str(row["calls"]), _format_currency(row["cost"]), f"{row['avg_latency']} ms")
        console.print(table)

    if summary.daily_costs:
        table = Table(title="By day")
        table.add_column("Date")
        table.add_column("Calls", justify="right")
        table.add_column("Cost", justify="right")
        for row in summary.daily_costs:
            table.add_row(row["date"], str(row["calls"]), _format_currency(row["cost"]))
        console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def today():
    """Show spend since UTC midnight."""
    try:
        spend = _services().ledger.today_spend()
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"Today: {_format_currency(spend.cost_usd)} across {spend.calls} calls")
    if spend.top_model:
        console.print(f"Top model: {spend.top_model}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def budget():
    """Show month-to-date spend against the monthly budget."""
    try:
        status = _services().ledger.budget_status()
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"Monthly budget: {_format_currency(status.monthly_budget)}")
    console.print(f"Spent: {_format_currency(status.monthly_spend)} ({status.percent_used}%)")
    console.print(f"Projected: {_format_currency(status.projected_monthly)}")
    color = "red" if status.over_budget or status.percent_used > 75 else "green"
    console.print(f"[{color}]{status.recommendation}[/]")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def tools():
    """List the assistant's tools."""
    table = Table(title="Assistant tools")
    table.add_column("Name")
    table.add_column("Parameters")
    for tool in TOOL_DEFINITIONS:
        params = ", ".join(
            f"{name}{'' if name in tool.required else '?'}" for name in tool.properties
        )
        table.add_row(tool.name.value, params or "-")
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def route(
    query_type: str = typer.Argument(..., help="Query type, e.g. rate_prediction"),
    prompt: str = typer.Argument(..., help="Prompt text"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Preferred model id"),
):
    """Route a single-shot query through the provider cascade."""
    try:
        qt = QueryType(query_type)
    except ValueError:
        valid = ", ".join(q.value for q in QueryType)
        console.print(f"[red]Unknown query type:[/] {query_type}. Valid: {valid}")
        sys.exit(EXIT_CODE_FAIL)

    try:
        services = _services()
        services.usage.initialize_schema()
        response = services.router.route(RouteRequest(
            query_type=qt,
            messages=[{"role": "user", "content": prompt}],
            preferred_model=model,
            source="cli",
        ))
    except FreightAIError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(response.content)
    note = " (fallback)" if response.fallback else ""
    console.print(
        f"\n[dim]{response.provider}/{response.model}{note} - "
        f"{response.input_tokens}+{response.output_tokens} tokens, "
        f"${response.cost_usd:.6f}, {response.latency_ms} ms[/]"
    )
    sys.exit(EXIT_CODE_PASS)


@app.command()
def chat(
    message: str = typer.Argument(..., help="Message to the assistant"),
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    role: str = typer.Option(..., "--role", "-r", help="Platform role, e.g. BROKER"),
    console_context: str = typer.Option("internal", "--console", help="Console context"),
    carrier_id: Optional[str] = typer.Option(None, "--carrier-id", help="Carrier profile id"),
    as_json: bool = typer.Option(False, "--json", help="Print the reply as JSON"),
):
    """Send one message to the assistant."""
    try:
        services = _services()
        services.initialize_storage()
        reply = services.orchestrator.chat(
            user_id=user,
            role=role,
            message=message,
            console_context=console_context,
            carrier_id=carrier_id,
        )
    except (FreightAIError, ValueError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if as_json:
        console.print_json(json.dumps(reply.to_dict()))
        sys.exit(EXIT_CODE_PASS)

    console.print(reply.reply)
    for action in reply.actions:
        target = f" -> {action.target}" if action.target else ""
        console.print(f"[cyan][{action.type.value}][/] {action.label}{target}")
    console.print(f"\n[dim]{reply.provider} - conversation {reply.conversation_id}[/]")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def history(conversation_id: int = typer.Argument(..., help="Conversation id printed by chat")):
    """Show the stored messages of a conversation."""
    try:
        conversation = _services().conversations.get(conversation_id)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    if conversation is None:
        console.print(f"[red]Conversation {conversation_id} not found[/]")
        sys.exit(EXIT_CODE_FAIL)

    console.print(
        f"[bold]Conversation {conversation.id}[/] ({conversation.user_id}, {conversation.console_context})"
    )
    for message in conversation.messages:
        console.print(f"[cyan]{message.role}[/] {message.timestamp.isoformat()}: {message.content}")
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()

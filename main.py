#!/usr/bin/env python3
"""
Feedhook - Feed Entry Webhook Delivery
======================================

Operator CLI for checking configuration and exercising webhook delivery.

Usage:
    python main.py --help                     # Show all commands
    python main.py check-config               # Validate configuration
    python main.py test-webhook               # Post a test message to the default webhook
    python main.py test-webhook --url URL     # Post a test message to another webhook
    python main.py dispatch-entry entry.json  # Run one entry through the pipeline
"""

import sys
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedhook.config.settings import get_settings
from feedhook.delivery.models import ContentPayload, DeliveryTarget, Identity
from feedhook.delivery.webhook_dispatcher import WebhookDispatcher
from feedhook.processing.entry import FeedEntry
from feedhook.processing.pipeline import DispatchState, EntryDispatchPipeline
from feedhook.routing.category_router import parse_category_map
from feedhook.routing.pattern_matcher import split_patterns
from feedhook.utils.logging import configure_application_logging
from feedhook.utils.exceptions import FeedhookError

console = Console()


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """Feedhook - deliver feed entries to chat webhooks."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _setup_logging(ctx, settings) -> None:
    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get('debug') else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate webhook configuration and environment variables."""
    console.print("[bold blue]🔧 Checking Feedhook Configuration[/bold blue]")

    try:
        settings = get_settings()

        table = Table(title="Configuration Status")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        checks = [
            ("Webhook", _check_webhook_config),
            ("Routing Rules", _check_routing_config),
            ("Category Webhooks", _check_category_config),
            ("Delivery", _check_delivery_config),
            ("Logging", _check_logging_config),
        ]

        all_passed = True
        for name, check_func in checks:
            status, details = check_func(settings)
            table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
            if not status:
                all_passed = False

        console.print(table)

        if all_passed:
            console.print("[bold green]✅ All configuration checks passed![/bold green]")
            sys.exit(0)
        else:
            console.print("[bold red]❌ Configuration validation failed[/bold red]")
            sys.exit(1)

    except FeedhookError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--url', help='Webhook URL to test (defaults to the configured webhook)')
@click.pass_context
def test_webhook(ctx, url):
    """Post a test message to a webhook."""
    try:
        settings = get_settings()
    except FeedhookError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    _setup_logging(ctx, settings)

    endpoint = url or settings.webhook.url
    if not endpoint:
        console.print("[bold red]❌ No webhook URL configured (set FEEDHOOK_WEBHOOK__URL or pass --url)[/bold red]")
        sys.exit(1)

    console.print(f"[bold blue]📤 Sending test message to {endpoint}[/bold blue]")

    dispatcher = WebhookDispatcher(
        request_timeout=settings.delivery.request_timeout,
        user_agent=settings.delivery.user_agent,
    )
    target = DeliveryTarget(
        endpoint=endpoint,
        identity=Identity(username=settings.webhook.username, avatar_url=settings.webhook.avatar_url),
    )
    message = f"Test message from Feedhook posted at {datetime.now().strftime('%m/%d/%Y %H:%M:%S')}"
    outcome = dispatcher.send_json(target, ContentPayload(text=message))

    if outcome.succeeded:
        console.print(f"[bold green]✅ Test message sent (HTTP {outcome.http_status})[/bold green]")
        sys.exit(0)
    else:
        console.print(f"[bold red]❌ Test message failed: {outcome.cause}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('entry_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def dispatch_entry(ctx, entry_file):
    """Run the entry stored as JSON in ENTRY_FILE through the dispatch pipeline."""
    try:
        settings = get_settings()
    except FeedhookError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    _setup_logging(ctx, settings)

    try:
        entry = FeedEntry.model_validate_json(entry_file.read_text(encoding='utf-8'))
    except ValidationError as e:
        console.print(f"[bold red]❌ Invalid entry file: {e}[/bold red]")
        sys.exit(1)

    console.print(f"[bold blue]🚀 Dispatching {entry.link}[/bold blue]")
    result = EntryDispatchPipeline(settings=settings).run(entry)

    table = Table(title="Dispatch Result")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("State", result.state.value)
    table.add_row("Mode", result.mode.value if result.mode else "-")
    table.add_row("Endpoint", result.endpoint or "-")
    table.add_row("Outcome", str(result.outcome) if result.outcome else "-")
    table.add_row("Error", result.error.user_message if result.error else "-")
    console.print(table)

    sys.exit(0 if result.state in (DispatchState.DELIVERED, DispatchState.SKIPPED) else 1)


# Helper functions for configuration checks
def _check_webhook_config(settings) -> tuple[bool, str]:
    """Check default webhook configuration."""
    if not settings.webhook.url:
        return False, "Default webhook URL not set"
    return True, (
        f"Endpoints: {len(settings.configured_endpoints())}, "
        f"User: {settings.webhook.username}, Ignore read: {settings.webhook.ignore_autoread}"
    )


def _check_routing_config(settings) -> tuple[bool, str]:
    """Check link and image pattern lists."""
    links = split_patterns(settings.webhook.embed_as_link_patterns)
    images = split_patterns(settings.webhook.embed_as_image_patterns)
    return True, f"Link patterns: {len(links)}, Image patterns: {len(images)}"


def _check_category_config(settings) -> tuple[bool, str]:
    """Check category webhook table."""
    mapping = parse_category_map(settings.webhook.category_webhooks)
    if not mapping:
        return True, "No category overrides"
    return True, f"Categories: {', '.join(mapping)}"


def _check_delivery_config(settings) -> tuple[bool, str]:
    """Check delivery tuning."""
    delivery = settings.delivery
    return True, (
        f"Timeout: {delivery.request_timeout}s, Image timeout: {delivery.image_timeout}s, "
        f"Description limit: {delivery.description_limit}"
    )


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            log_path = Path(settings.logging.file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Feedhook interrupted by user[/yellow]")
        sys.exit(130)

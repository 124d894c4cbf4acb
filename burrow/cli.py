import asyncio

import click
from rich.console import Console

from burrow.config import Config, get_config
from burrow.logging import UVICORN_LOG_CONFIG, configure_logging

console = Console()


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx):
    """burrow - conversational agent runtime"""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = get_config()
    except ValueError as e:
        ctx.obj["config_error"] = str(e)

    if ctx.invoked_subcommand is None:
        console.print("[bold]burrow[/bold] - conversational agent runtime\n")
        console.print("Run [cyan]burrow serve[/cyan] to start the gateway.")
        console.print("\nUse [cyan]burrow --help[/cyan] for all commands.")


def _require_config(ctx) -> Config:
    if "config_error" in ctx.obj:
        console.print(f"[red]Error:[/red] {ctx.obj['config_error']}")
        raise SystemExit(1)
    return ctx.obj["config"]


@main.command()
@click.pass_context
def status(ctx):
    """Show the effective configuration."""
    if "config_error" in ctx.obj:
        console.print(f"[red]Error:[/red] {ctx.obj['config_error']}")
        console.print()
        console.print("[bold]Provider keys (first one set wins):[/bold]")
        console.print("  OPENAI_API_KEY, OPENROUTER_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY")
        raise SystemExit(1)

    config = ctx.obj["config"]
    providers = [
        name
        for name, key in (
            ("openai", config.openai_api_key),
            ("openrouter", config.openrouter_api_key),
            ("anthropic", config.anthropic_api_key),
            ("gemini", config.gemini_api_key),
        )
        if key
    ]

    console.print("[bold]burrow status[/bold]")
    console.print()
    console.print(f"Workspace: [cyan]{config.workspace}[/cyan]")
    console.print(f"Model: {config.model}")
    console.print(f"Providers: {', '.join(providers) or '[red]none configured[/red]'}")
    console.print(f"Exec enabled: {config.exec_enabled} (timeout {config.exec_timeout}s)")
    allowlist = ", ".join(config.network_allowlist) or "all hosts"
    console.print(f"Network allowlist: {allowlist}")
    console.print(f"Remote sessions: {config.sessions_remote_url or 'off'}")


@main.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.pass_context
def serve(ctx, host: str | None, port: int | None):
    """Start the HTTP gateway and the agent loop."""
    config = _require_config(ctx)
    host = host or config.gateway_host
    port = port or config.gateway_port

    import uvicorn

    console.print(f"[bold]burrow gateway[/bold] starting on http://{host}:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]")
    console.print()

    uvicorn.run(
        "burrow.server.app:create_default_app",
        factory=True,
        host=host,
        port=port,
        log_config=UVICORN_LOG_CONFIG,
    )


@main.command()
@click.option("-p", "--prompt", required=True, help="The prompt to send")
@click.option("-s", "--session", "session_key", default="cli:default", help="Session key")
@click.pass_context
def run(ctx, prompt: str, session_key: str):
    """Send one message through the agent loop and print the reply."""
    config = _require_config(ctx)
    configure_logging(config.log_level)
    reply = asyncio.run(_run_once(config, prompt, session_key))
    console.print(reply)


async def _run_once(config: Config, prompt: str, session_key: str) -> str:
    from burrow.bus import InboundMessage, OutboundMessage
    from burrow.server.runtime import Runtime
    from burrow.types import Message, Role

    runtime = Runtime(config)
    await runtime.connect()
    try:
        outbound = runtime.bus.subscribe()
        runtime.start()

        inbound = Message.new("cli", session_key, Role.USER, prompt)
        console.print(f"[dim]Running: {prompt}[/dim]\n")
        runtime.bus.publish(InboundMessage(inbound))

        async for event in outbound:
            if isinstance(event, OutboundMessage) and event.message.session_key == session_key:
                return event.message.content
        return ""
    finally:
        await runtime.close()


if __name__ == "__main__":
    main()

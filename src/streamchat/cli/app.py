"""Main CLI application using Typer."""
import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..session import ChatSessionController, ChatState, StateChange
from ..ui.formatting import format_assistant_content, format_timestamp
from .providers import get_persistence, resolve_memory_backend

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="streamchat",
    help="Streaming chat client for OpenAI-compatible endpoints",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


def _memory_backend_option():
    return typer.Option(
        None,
        "--memory-backend",
        "-m",
        help="Storage for conversations and settings: 'sqlite' (persistent) or 'memory' (session-only)"
    )


def _memory_path_option():
    return typer.Option(
        None,
        "--memory-path",
        help="Path for the SQLite database (only with --memory-backend sqlite)"
    )


@asynccontextmanager
async def _open_session(
    memory_backend: str | None,
    memory_path: str | None,
) -> AsyncIterator[tuple[ChatState, ChatSessionController]]:
    """Load the saved state and keep it synchronized while the command runs."""
    persistence = get_persistence(memory_backend, memory_path, console)
    await persistence.connect()
    try:
        state = await persistence.load()
        state.add_listener(persistence)
        yield state, ChatSessionController(state)
    finally:
        await persistence.disconnect()


def _mask_key(api_key: str) -> str:
    if not api_key:
        return "[dim]not set[/dim]"
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}…{api_key[-4:]}"


@app.command(name="tui")
def tui_command(
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch interactive TUI chat interface."""
    async def _tui():
        from ..ui import run_textual_tui

        persistence = get_persistence(memory_backend, memory_path, console)
        await run_textual_tui(
            persistence,
            log_level=log_level,
            memory_backend=resolve_memory_backend(memory_backend),
        )
        console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        pass


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send"),
    conversation: str | None = typer.Option(
        None,
        "--conversation",
        "-c",
        help="Continue the conversation with this id instead of starting a new one"
    ),
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
):
    """Send one message and stream the answer to the terminal."""
    async def _ask():
        async with _open_session(memory_backend, memory_path) as (state, controller):
            if conversation is not None and not await controller.select_conversation(conversation):
                console.print(f"[red]Error: no conversation with id {conversation}[/red]")
                raise typer.Exit(code=1)

            printed = 0

            def echo(change: StateChange, current: ChatState) -> None:
                nonlocal printed
                if change is not StateChange.MESSAGES:
                    return
                messages = current.messages
                if not messages or messages[-1].role != "assistant":
                    return
                content = messages[-1].content
                if len(content) > printed:
                    console.print(
                        content[printed:], end="", markup=False, highlight=False, soft_wrap=True
                    )
                    printed = len(content)

            state.add_listener(echo)
            completed = await controller.send(prompt)
            if printed:
                console.print()

            if not completed:
                if state.error is not None:
                    console.print(f"[red]Error: {state.error}[/red]")
                else:
                    console.print("[yellow]Nothing to send[/yellow]")
                raise typer.Exit(code=1)

            console.print(f"[dim]conversation: {state.active_id}[/dim]")

    asyncio.run(_ask())


@app.command()
def config(
    name: str | None = typer.Option(None, "--name", help="Model name, e.g. glm-4-flash"),
    base_url: str | None = typer.Option(None, "--base-url", help="API Base, e.g. https://host/v1"),
    api_key: str | None = typer.Option(None, "--api-key", help="API Key"),
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
):
    """Show the model settings, or update the fields given as options."""
    async def _config():
        async with _open_session(memory_backend, memory_path) as (state, controller):
            updates = {
                field: value.strip()
                for field, value in (("name", name), ("base_url", base_url), ("api_key", api_key))
                if value is not None
            }
            if updates:
                await controller.update_settings(state.settings.model_copy(update=updates))
                console.print("[green]Settings saved.[/green]")

            settings = state.settings
            table = Table(show_header=False, box=None)
            table.add_column("Setting", style="bold cyan", width=12)
            table.add_column("Value")
            table.add_row("Model name", settings.name or "[dim]not set[/dim]")
            table.add_row("API Base", settings.base_url or "[dim]not set[/dim]")
            table.add_row("API Key", _mask_key(settings.api_key))
            console.print(table)

            missing = settings.missing_fields()
            if missing:
                console.print(f"[yellow]Missing: {', '.join(missing)}[/yellow]")

    asyncio.run(_config())


@app.command()
def test(
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
):
    """Check that the saved model settings reach a working endpoint."""
    async def _test():
        async with _open_session(memory_backend, memory_path) as (state, controller):
            console.print(f"[dim]Testing {state.settings.name or '?'} at {state.settings.base_url or '?'}...[/dim]")
            result = await controller.test_connection()

        if result.success:
            console.print(f"[green]+[/green] {result.message}")
        else:
            console.print(f"[red]x[/red] {result.message}")
            raise typer.Exit(code=1)

    asyncio.run(_test())


@app.command()
def history(
    conversation: str | None = typer.Argument(None, help="Show the messages of this conversation"),
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
):
    """List saved conversations grouped by recency, or show one conversation."""
    async def _history():
        async with _open_session(memory_backend, memory_path) as (state, _):
            store = state.conversations

            if conversation is not None:
                found = store.get(conversation)
                if found is None:
                    console.print(f"[red]Error: no conversation with id {conversation}[/red]")
                    raise typer.Exit(code=1)
                console.print(f"[bold]{found.title}[/bold] [dim]({found.id})[/dim]\n")
                for message in found.messages:
                    is_user = message.role == "user"
                    content = message.content if is_user else format_assistant_content(message.content)
                    console.print(Panel(
                        content,
                        title=f"{'You' if is_user else 'Assistant'} [{format_timestamp(message.timestamp)}]",
                        title_align="left",
                        border_style="green" if is_user else "magenta",
                    ))
                return

            if not len(store):
                console.print("[dim]No conversations yet.[/dim]")
                return

            for label, items in store.grouped().sections():
                table = Table(title=label, title_justify="left", title_style="bold cyan")
                table.add_column("ID", style="dim")
                table.add_column("Title", style="bold")
                table.add_column("Messages", justify="right")
                table.add_column("Last message")
                table.add_column("Updated", style="dim")
                for item in items:
                    updated = datetime.fromtimestamp(item.timestamp / 1000)
                    table.add_row(
                        item.id,
                        item.title,
                        str(len(item.messages)),
                        item.last_message,
                        updated.strftime("%Y-%m-%d %H:%M"),
                    )
                console.print(table)

    asyncio.run(_history())


@app.command()
def rename(
    conversation: str = typer.Argument(..., help="Conversation id"),
    title: str = typer.Argument(..., help="New title"),
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
):
    """Rename a saved conversation."""
    async def _rename():
        if not title.strip():
            console.print("[red]Error: title cannot be empty[/red]")
            raise typer.Exit(code=1)
        async with _open_session(memory_backend, memory_path) as (_, controller):
            if not await controller.rename_conversation(conversation, title):
                console.print(f"[red]Error: no conversation with id {conversation}[/red]")
                raise typer.Exit(code=1)
        console.print(f"[green]Renamed to '{title.strip()}'.[/green]")

    asyncio.run(_rename())


@app.command()
def delete(
    conversation: str = typer.Argument(..., help="Conversation id"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    ),
    memory_backend: str | None = _memory_backend_option(),
    memory_path: str | None = _memory_path_option(),
):
    """Delete a saved conversation (cannot be undone)."""
    async def _delete():
        async with _open_session(memory_backend, memory_path) as (state, controller):
            found = state.conversations.get(conversation)
            if found is None:
                console.print(f"[red]Error: no conversation with id {conversation}[/red]")
                raise typer.Exit(code=1)

            if not yes:
                console.print(f"[yellow]WARNING: This will delete '{found.title}'![/yellow]")
                if not typer.confirm("Are you sure you want to continue?"):
                    console.print("[dim]Aborted.[/dim]")
                    return

            await controller.delete_conversation(conversation)
            console.print("[green]Conversation deleted.[/green]")

    asyncio.run(_delete())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

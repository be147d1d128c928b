"""
Onboarding - CLI Entry Point.

Usage:
    onboarding run             Walk through the wizard in the terminal
    onboarding steps           Show step slots and their visibility
    onboarding draft show      Print the saved draft
    onboarding draft clear     Delete the saved draft
    onboarding config          Show effective settings
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="onboarding",
    help="Onboarding wizard - collect a member profile step by step.",
    add_completion=False,
)
draft_app = typer.Typer(
    help="Inspect or discard the saved draft (drafts outlive the process only with ONBOARDING_STORAGE_BACKEND=file)."
)
app.add_typer(draft_app, name="draft")
console = Console()

MULTI_SELECT_FIELDS = {"interests", "community_hopes"}
FLAG_FIELDS = {"is_georgia_resident"}

BACK_COMMANDS = {":b", ":back"}
QUIT_COMMANDS = {":q", ":quit"}


class _Back(Exception):
    pass


class _Quit(Exception):
    pass


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log engine transitions"),
) -> None:
    from .config import get_settings

    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# =============================================================================
# Prompting
# =============================================================================


def _read(prompt: str) -> str:
    raw = console.input(prompt).strip()
    if raw in BACK_COMMANDS:
        raise _Back()
    if raw in QUIT_COMMANDS:
        raise _Quit()
    return raw


def _print_options(options: list[dict]) -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    for i, option in enumerate(options, 1):
        table.add_row(f"[cyan]{i}[/cyan]", option["label"], f"[dim]{option['id']}[/dim]")
    console.print(table)


def _resolve_choice(token: str, options: list[dict]) -> str:
    """Option by number or id; unknown tokens pass through for validation."""
    if token.isdigit() and 1 <= int(token) <= len(options):
        return options[int(token) - 1]["id"]
    return token


def parse_answer(name: str, raw: str, options: list[dict] | None) -> Any:
    """Turn a typed answer into a field value."""
    if name in FLAG_FIELDS:
        return raw.lower() in ("y", "yes", "true", "1")
    if options is None:
        return raw
    if name in MULTI_SELECT_FIELDS:
        return [_resolve_choice(t.strip(), options) for t in raw.split(",") if t.strip()]
    return _resolve_choice(raw, options)


def _prompt_step(engine) -> dict[str, Any]:
    from .options import get_all_options, get_option_label

    all_options = get_all_options()
    view = engine.step_view()
    answers: dict[str, Any] = {}
    for name, current in view.values.items():
        options = all_options.get(name)
        if options:
            _print_options(options)
        if view.errors.get(name):
            console.print(f"[red]{view.errors[name]}[/red]")
        if isinstance(current, list):
            shown = ", ".join(current)
        elif options and isinstance(current, str):
            shown = get_option_label(options, current)
        else:
            shown = current
        hint = f" [dim]({shown})[/dim]" if shown not in (None, "") else ""
        raw = _read(f"[bold]{name}[/bold]{hint}: ")
        # Enter keeps the current answer
        if raw:
            answers[name] = parse_answer(name, raw, options)
    return answers


def _build_engine(output: Path | None = None, overrides: dict[str, str] | None = None):
    from .engine import FormEngine
    from .payload import build_completion_payload
    from .persistence import build_persistence

    async def complete(data: dict[str, Any]) -> None:
        payload = build_completion_payload(data).to_dict()
        rendered = json.dumps(payload, indent=2)
        if output is not None:
            output.write_text(rendered, encoding="utf-8")
            console.print(f"[dim]Payload written to {output}[/dim]")
        console.print(Panel(rendered, title="Submitted", border_style="green"))

    return FormEngine(
        persistence=build_persistence(),
        completion_handler=complete,
        overrides=overrides,
    )


# =============================================================================
# Commands
# =============================================================================


@app.command()
def run(
    first_name: str = typer.Option("", "--first-name", help="Name from your sign-in provider"),
    last_name: str = typer.Option("", "--last-name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the final payload as JSON"),
) -> None:
    """Walk through the onboarding wizard. Type :back to go back, :quit to stop."""
    overrides = {k: v for k, v in {"first_name": first_name, "last_name": last_name}.items() if v}
    engine = _build_engine(output, overrides)

    while not engine.complete:
        view = engine.step_view()
        console.print(
            f"\n[bold green]Step {engine.visible_step_number} of {engine.total_visible_steps}[/bold green]"
            f"  {view.title}"
        )
        try:
            answers = _prompt_step(engine)
        except _Back:
            if engine.can_go_back:
                engine.retreat()
            continue
        except _Quit:
            console.print("[dim]Draft saved. Run again to pick up where you left off.[/dim]")
            return

        if answers:
            engine.update_fields(answers)
        try:
            asyncio.run(engine.proceed())
        except Exception as e:
            console.print(f"[red]Submission failed: {e}. Your answers are saved; try again.[/red]")
            continue

    console.print("\n[green]Onboarding submitted! You'll be contacted shortly.[/green]")


@app.command()
def steps() -> None:
    """Show every step slot and whether it is visible for the saved draft."""
    engine = _build_engine()
    data = engine.data

    table = Table(title="Onboarding steps")
    table.add_column("#", justify="right")
    table.add_column("Key")
    table.add_column("Fields")
    table.add_column("Visible")
    for step in engine.schema:
        marker = "→ " if step.id == engine.current_step_id else ""
        visible = "✅" if engine.schema.is_visible(step.id, data) else "-"
        table.add_row(f"{marker}{step.id}", step.key, ", ".join(step.field_names), visible)
    console.print(table)
    console.print(f"Progress: {engine.visible_step_number}/{engine.total_visible_steps}")


@draft_app.command("show")
def draft_show() -> None:
    """Print the saved draft."""
    from .persistence import build_persistence

    snapshot = build_persistence().read()
    if snapshot is None:
        console.print("[dim]No saved draft.[/dim]")
        return
    console.print_json(snapshot.to_json())


@draft_app.command("clear")
def draft_clear() -> None:
    """Delete the saved draft."""
    from .persistence import build_persistence

    build_persistence().clear()
    console.print("🧹 Draft cleared")


@app.command()
def config() -> None:
    """Show effective settings."""
    from .config import get_settings

    settings = get_settings()
    for name, value in settings.model_dump().items():
        console.print(f"   {name}: {value}")


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"Onboarding version {__version__}")


if __name__ == "__main__":
    app()

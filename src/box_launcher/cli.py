"""Command-line entry point.

The launcher has its own ``-flag[=value]`` grammar, so typer is told to pass
every token through untouched and ``launch()`` does the parsing.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape

from box_launcher.errors import LauncherError
from box_launcher.launcher import launch

console = Console()

app = typer.Typer(
    name="box",
    help="Bootstrap the CFML engine and run the shell, a file, or the server.",
    add_completion=False,
)


@app.command(
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "help_option_names": [],
    }
)
def run(ctx: typer.Context) -> None:
    """Launch the runtime with the given arguments."""
    try:
        exit_code = launch(ctx.args, console=console)
    except LauncherError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(1)
    raise typer.Exit(exit_code)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

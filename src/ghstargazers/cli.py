import asyncio
import logging
import signal
from typing import Optional

import typer

from ghstargazers.config import get_settings
from ghstargazers.core import StargazerEngine
from ghstargazers.models import EnrichedUser, ProgressEvent, RunResult

app = typer.Typer()

EXIT_CODES = {"complete": 0, "error": 1, "stopped": 130}


def _print_event(event: ProgressEvent) -> None:
    if event.type == "progress":
        prefix = "! " if event.is_warning else ""
        typer.echo(f"{prefix}{event.message}", err=event.is_warning)
    elif event.type == "error":
        typer.echo(f"✘ {event.message}", err=True)
    else:
        typer.echo(f"✔ {event.message}")


def rank_users(users: tuple[EnrichedUser, ...], top: int) -> list[EnrichedUser]:
    """Users by total stars, then followers, most first."""
    ranked = sorted(users, key=lambda u: (u.total_stars, u.followers), reverse=True)
    return ranked[:top] if top > 0 else ranked


async def _analyze(engine: StargazerEngine, owner: str, repo: str, limit: int, token: str) -> RunResult:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, engine.cancel)
    except (NotImplementedError, RuntimeError):  # pragma: no cover - non-Unix loops
        pass
    try:
        return await engine.run(owner, repo, limit, token, _print_event)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):  # pragma: no cover
            pass


@app.command()
def analyze(
    owner: str,
    repo: str,
    max_users: int = typer.Option(100, "--max-users", "-n", min=1),
    token: Optional[str] = typer.Option(None, "--token", envvar="GITHUB_TOKEN"),
    top: int = typer.Option(20, help="How many users to list; 0 lists all."),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Collect up to <max-users> stargazers of OWNER/REPO and rank them by stars."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    settings = get_settings()
    token = token or settings.github_token
    if not token:
        typer.echo("A GitHub token is required (--token or GITHUB_TOKEN).", err=True)
        raise typer.Exit(code=2)

    engine = StargazerEngine(settings)
    result = asyncio.run(_analyze(engine, owner, repo, max_users, token))

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    elif result.status == "complete":
        for user in rank_users(result.users, top):
            typer.echo(
                f"{user.login:<24} ★ {user.total_stars:>7}  followers {user.followers:>6}  {user.name}"
            )
    elif result.status == "stopped":
        typer.echo("Analysis stopped", err=True)

    raise typer.Exit(code=EXIT_CODES[result.status])


if __name__ == "__main__":
    app()

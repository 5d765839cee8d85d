from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml

from ..tasks import build_registry
from .core import Runner
from .errors import OrchestratorError
from .logging import get_logger


app = typer.Typer(add_completion=False, help="Publish API docs and documentation gists")
log = get_logger("docship.cli")


def load_config(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        log.warning("Config %s not found, using defaults", p)
        return {}
    with open(p, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@app.command("list")
def list_tasks():
    """List registered tasks and their prerequisites."""
    registry = build_registry()
    typer.echo("Registered tasks:")
    for name in registry.names():
        spec = registry.get(name)
        line = f"- {name}"
        if spec.deps:
            line += f" -> {', '.join(spec.deps)}"
        if spec.description:
            line += f"  ({spec.description})"
        typer.echo(line)


@app.command("run")
def run_task(
    name: str = typer.Argument("default", help="Task name to run"),
    config: str = typer.Option("configs/base.yaml", help="Path to YAML config"),
    force: bool = typer.Option(False, help="Ignore the content cache"),
    cache: bool = typer.Option(
        False, "--cache/--no-cache", help="Skip tasks whose inputs did not change since the last run"
    ),
    jobs: int = typer.Option(1, help="Run independent tasks on this many threads"),
    log_file: Optional[str] = typer.Option(None, help="Also write logs to this file"),
):
    """Run a task and its prerequisites."""
    if log_file:
        get_logger("docship", Path(log_file))
    params = load_config(config)
    registry = build_registry()
    try:
        result = Runner(registry).run(
            name,
            params=params,
            force=set(registry.names()) if force else set(),
            jobs=jobs,
            use_cache=cache,
        )
    except OrchestratorError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except Exception as e:  # noqa: BLE001
        log.error("Task %s failed: %s", name, e)
        raise typer.Exit(code=1)
    cached = [s.name for s in result.steps if s.status == "cached"]
    msg = f"Done: {name} ({len(result.executed)} run"
    if cached:
        msg += f", {len(cached)} cached"
    typer.echo(msg + ")")


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

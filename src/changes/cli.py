from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from src.common.console import configure_logging, print_status, settings_from_option
from src.common.reporting import join_paths, write_github_env

from .git_diff import ChangeSource, resolve_range

app = typer.Typer(help="List YAML files changed between two git references.")


@app.command()
def changed(
    event_name: Optional[str] = typer.Option(
        None,
        "--event-name",
        envvar="GITHUB_EVENT_NAME",
        help="Workflow trigger; 'pull_request' compares the base and head branches.",
    ),
    base_ref: Optional[str] = typer.Option(None, "--base-ref", envvar="GITHUB_BASE_REF"),
    head_ref: Optional[str] = typer.Option(None, "--head-ref", envvar="GITHUB_HEAD_REF"),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Write the newline-delimited file list here.",
    ),
    github_env: Optional[Path] = typer.Option(
        None,
        "--github-env",
        envvar="GITHUB_ENV",
        help="Env file to append HAS_CHANGED_FILES / CHANGED_YAML_FILES to.",
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML file."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    configure_logging(verbose)
    settings = settings_from_option(config)
    source = ChangeSource(
        resolve_range(event_name, base_ref, head_ref),
        git_cmd=settings.git_cmd,
        extensions=settings.extensions,
        timeout=settings.command_timeout,
    )
    files = source.changed_yaml_files()

    if files:
        print_status("INFO", f"Total files to check: {len(files)}")
        for name in files:
            typer.echo(f"  {name}")
    else:
        print_status("INFO", "No YAML files changed in this PR/commit")

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(join_paths(files) + ("\n" if files else ""), encoding="utf-8")
    write_github_env(
        github_env,
        {
            "HAS_CHANGED_FILES": bool(files),
            "CHANGED_YAML_FILES": files,
        },
    )


if __name__ == "__main__":  # pragma: no cover
    app()

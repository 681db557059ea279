from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from src.changes.git_diff import ChangeSource, gather_candidates, resolve_range
from src.common.console import configure_logging, print_status, settings_from_option
from src.common.reporting import join_paths, write_github_env, write_json_report

from .detector import ManifestDetector

app = typer.Typer(help="Pick out the changed YAML files that look like Kubernetes manifests.")


@app.command()
def detect(
    paths: Optional[List[str]] = typer.Argument(None, help="Candidate files (defaults to the git diff)."),
    file_list: Optional[str] = typer.Option(
        None,
        "--file-list",
        "-f",
        help="Newline-delimited list of candidate files; '-' reads stdin.",
    ),
    event_name: Optional[str] = typer.Option(None, "--event-name", envvar="GITHUB_EVENT_NAME"),
    base_ref: Optional[str] = typer.Option(None, "--base-ref", envvar="GITHUB_BASE_REF"),
    head_ref: Optional[str] = typer.Option(None, "--head-ref", envvar="GITHUB_HEAD_REF"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the manifest list here."),
    report: Optional[Path] = typer.Option(None, "--report", help="Write per-file verdicts as JSON."),
    github_env: Optional[Path] = typer.Option(None, "--github-env", envvar="GITHUB_ENV"),
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
    try:
        candidates = gather_candidates(paths or [], file_list, source)
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read file list {file_list}: {exc}") from exc

    detector = ManifestDetector(settings.path_keywords, settings.excluded_paths)
    verdicts = detector.filter(candidates)
    manifests = [verdict.path for verdict in verdicts if verdict.is_manifest]

    for verdict in verdicts:
        if verdict.is_manifest:
            print_status("SUCCESS", f"{verdict.path}: Kubernetes manifest ({verdict.detail})")
        else:
            typer.echo(f"➖ {verdict.path}: not a manifest ({verdict.detail})")

    if manifests:
        print_status("INFO", f"Total Kubernetes files to validate: {len(manifests)}")
    else:
        print_status("INFO", "No Kubernetes YAML files found in changes")

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(join_paths(manifests) + ("\n" if manifests else ""), encoding="utf-8")
    if report is not None:
        write_json_report(report, [verdict.to_dict() for verdict in verdicts])
    write_github_env(
        github_env,
        {
            "K8S_FILES_FOUND": bool(manifests),
            "K8S_YAML_FILES": manifests,
        },
    )


if __name__ == "__main__":  # pragma: no cover
    app()

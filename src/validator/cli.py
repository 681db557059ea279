from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from src.changes.git_diff import ChangeSource, gather_candidates, resolve_range
from src.common.console import configure_logging, print_block, print_status, settings_from_option
from src.common.errors import ExternalToolTimeout, ExternalToolUnavailable
from src.common.reporting import BatchStatus, write_github_env, write_json_report
from src.encryption.gitcrypt import GitCrypt

from .batch import ManifestRecord, ManifestStatus, ValidationBatch, ValidationTally
from .kubeconform import SchemaValidator

app = typer.Typer(help="Validate Kubernetes manifests against the API schema with kubeconform.")

_RECORD_STATUS = {
    ManifestStatus.VALID: "SUCCESS",
    ManifestStatus.INVALID: "ERROR",
    ManifestStatus.SKIPPED: "WARNING",
    ManifestStatus.ENCRYPTED: "INFO",
}


@app.command()
def validate(
    paths: Optional[List[str]] = typer.Argument(None, help="Manifests to validate (defaults to the git diff)."),
    file_list: Optional[str] = typer.Option(
        None,
        "--file-list",
        "-f",
        help="Newline-delimited list of manifests; '-' reads stdin.",
    ),
    event_name: Optional[str] = typer.Option(None, "--event-name", envvar="GITHUB_EVENT_NAME"),
    base_ref: Optional[str] = typer.Option(None, "--base-ref", envvar="GITHUB_BASE_REF"),
    head_ref: Optional[str] = typer.Option(None, "--head-ref", envvar="GITHUB_HEAD_REF"),
    kubeconform_cmd: Optional[str] = typer.Option(None, "--kubeconform", help="kubeconform binary to run."),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Per-call timeout in seconds (default 30)."),
    report: Optional[Path] = typer.Option(None, "--report", help="Write per-file results as JSON."),
    github_env: Optional[Path] = typer.Option(None, "--github-env", envvar="GITHUB_ENV"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML file."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Run kubeconform on every candidate manifest and summarise the results."""

    configure_logging(verbose)
    settings = settings_from_option(config).override(kubeconform_cmd=kubeconform_cmd, command_timeout=timeout)
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

    validator = SchemaValidator(
        settings.kubeconform_cmd,
        timeout=settings.command_timeout,
        extra_args=settings.kubeconform_args,
    )
    git_crypt = GitCrypt(settings.git_crypt_cmd, git_cmd=settings.git_cmd, timeout=settings.command_timeout)
    tally = ValidationTally()
    try:
        if candidates:
            validator.ensure_available()
            tally = ValidationBatch(validator, git_crypt).run(candidates)
    except (ExternalToolUnavailable, ExternalToolTimeout) as exc:
        print_status("ERROR", str(exc))
        raise typer.Exit(code=2) from exc

    for record in tally.records:
        _print_record(record)
    _print_summary(tally)
    if report is not None:
        write_json_report(report, tally.to_dict())
    write_github_env(github_env, tally.to_env())
    raise typer.Exit(code=tally.status.exit_code)


def _print_record(record: ManifestRecord) -> None:
    detail = f" ({record.detail})" if record.detail else ""
    print_status(_RECORD_STATUS[record.status], f"{record.status.value}: {record.path}{detail}")
    if record.status is not ManifestStatus.VALID and record.output.strip():
        for line in record.output.strip().splitlines():
            typer.echo(f"    {line}")


def _print_summary(tally: ValidationTally) -> None:
    typer.echo("==========================================")
    typer.echo("        KUBERNETES VALIDATION SUMMARY")
    typer.echo("==========================================")
    typer.echo(f"Total files: {tally.total}")
    typer.echo(f"Valid: {len(tally.paths(ManifestStatus.VALID))}")
    typer.echo(f"Invalid: {len(tally.paths(ManifestStatus.INVALID))}")
    typer.echo(f"Skipped (missing schema): {len(tally.paths(ManifestStatus.SKIPPED))}")
    typer.echo(f"Encrypted: {len(tally.paths(ManifestStatus.ENCRYPTED))}")
    print_block("INVALID FILES:", tally.paths(ManifestStatus.INVALID), status="ERROR")
    print_block("SKIPPED FILES:", tally.paths(ManifestStatus.SKIPPED), status="WARNING")
    print_block("ENCRYPTED FILES:", tally.paths(ManifestStatus.ENCRYPTED), status="INFO")
    typer.echo("")
    status = tally.status
    if status is BatchStatus.NEUTRAL:
        print_status("INFO", "NEUTRAL: no Kubernetes manifests to validate")
    elif status is BatchStatus.FAIL:
        print_status("ERROR", "FAILED: some manifests did not pass schema validation")
    else:
        print_status("SUCCESS", "PASSED: all manifests passed schema validation")


if __name__ == "__main__":  # pragma: no cover
    app()

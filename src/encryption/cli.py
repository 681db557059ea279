from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from src.changes.git_diff import ChangeSource, gather_candidates, resolve_range
from src.common.console import configure_logging, print_block, print_status, settings_from_option
from src.common.reporting import BatchStatus, write_github_env, write_json_report
from src.common.settings import GuardSettings

from .batch import EncryptionBatch, EncryptionTally, FileEntry
from .classifier import EncryptionClassifier, Verdict
from .gitcrypt import GitCrypt
from .patterns import load_pattern_set_or_empty

app = typer.Typer(help="Check that files required to be encrypted by .gitattributes actually are.")

_VERDICT_STATUS = {
    Verdict.ENCRYPTED: "SUCCESS",
    Verdict.UNENCRYPTED: "ERROR",
    Verdict.SUSPICIOUS: "WARNING",
}


@app.command()
def check(
    paths: Optional[List[str]] = typer.Argument(None, help="Candidate files (defaults to the git diff)."),
    file_list: Optional[str] = typer.Option(
        None,
        "--file-list",
        "-f",
        help="Newline-delimited list of candidate files; '-' reads stdin.",
    ),
    attributes: Optional[Path] = typer.Option(
        None,
        "--attributes",
        help="Attributes file declaring git-crypt patterns (default: .gitattributes).",
    ),
    event_name: Optional[str] = typer.Option(None, "--event-name", envvar="GITHUB_EVENT_NAME"),
    base_ref: Optional[str] = typer.Option(None, "--base-ref", envvar="GITHUB_BASE_REF"),
    head_ref: Optional[str] = typer.Option(None, "--head-ref", envvar="GITHUB_HEAD_REF"),
    suspicious_upper: Optional[int] = typer.Option(
        None,
        "--suspicious-upper",
        help="Scores at or above this are UNENCRYPTED (default 50).",
    ),
    suspicious_lower: Optional[int] = typer.Option(
        None,
        "--suspicious-lower",
        help="Scores at or below this are ENCRYPTED (default -30).",
    ),
    fail_on_suspicious: Optional[bool] = typer.Option(
        None,
        "--fail-on-suspicious/--no-fail-on-suspicious",
        help="Treat SUSPICIOUS files as failures.",
    ),
    use_git_crypt: Optional[bool] = typer.Option(
        None,
        "--git-crypt/--no-git-crypt",
        help="Consult `git-crypt status` as an extra signal.",
    ),
    report: Optional[Path] = typer.Option(None, "--report", help="Write per-file results as JSON."),
    github_env: Optional[Path] = typer.Option(None, "--github-env", envvar="GITHUB_ENV"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML file."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Classify the changed files that match an encryption pattern."""

    configure_logging(verbose)
    settings = settings_from_option(config).override(
        attributes_file=attributes,
        suspicious_upper=suspicious_upper,
        suspicious_lower=suspicious_lower,
        fail_on_suspicious=fail_on_suspicious,
        use_git_crypt=use_git_crypt,
    )
    source = ChangeSource(
        resolve_range(event_name, base_ref, head_ref),
        git_cmd=settings.git_cmd,
        extensions=settings.extensions,
        timeout=settings.command_timeout,
    )
    candidates = _candidates(paths, file_list, source)
    pattern_set = load_pattern_set_or_empty(settings.attributes_file, settings.marker_tokens)
    if pattern_set:
        print_status("INFO", f"Found {len(pattern_set)} encryption pattern(s) in {settings.attributes_file}")
        for pattern in pattern_set:
            typer.echo(f"  {pattern}")
    else:
        print_status("WARNING", "No encryption patterns configured; no files require encryption")

    batch = EncryptionBatch(
        _build_classifier(settings),
        pattern_set,
        fail_on_suspicious=settings.fail_on_suspicious,
    )
    tally = batch.run(candidates)
    _finish(tally, report=report, github_env=github_env)


@app.command()
def classify(
    paths: Optional[List[str]] = typer.Argument(None, help="Files to classify."),
    file_list: Optional[str] = typer.Option(
        None,
        "--file-list",
        "-f",
        help="Newline-delimited list of files; '-' reads stdin.",
    ),
    suspicious_upper: Optional[int] = typer.Option(None, "--suspicious-upper"),
    suspicious_lower: Optional[int] = typer.Option(None, "--suspicious-lower"),
    fail_on_suspicious: Optional[bool] = typer.Option(
        None,
        "--fail-on-suspicious/--no-fail-on-suspicious",
    ),
    use_git_crypt: Optional[bool] = typer.Option(None, "--git-crypt/--no-git-crypt"),
    report: Optional[Path] = typer.Option(None, "--report", help="Write per-file results as JSON."),
    github_env: Optional[Path] = typer.Option(None, "--github-env", envvar="GITHUB_ENV"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings YAML file."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Classify the given files regardless of encryption patterns."""

    configure_logging(verbose)
    settings = settings_from_option(config).override(
        suspicious_upper=suspicious_upper,
        suspicious_lower=suspicious_lower,
        fail_on_suspicious=fail_on_suspicious,
        use_git_crypt=use_git_crypt,
    )
    candidates = _candidates(paths, file_list, None)
    if not candidates:
        raise typer.BadParameter("No files specified")

    batch = EncryptionBatch(_build_classifier(settings), None, fail_on_suspicious=settings.fail_on_suspicious)
    tally = batch.run(candidates)
    _finish(tally, report=report, github_env=github_env)


def _candidates(paths: Optional[List[str]], file_list: Optional[str], source: Optional[ChangeSource]) -> List[str]:
    try:
        return gather_candidates(paths or [], file_list, source)
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read file list {file_list}: {exc}") from exc


def _build_classifier(settings: GuardSettings) -> EncryptionClassifier:
    try:
        probe = None
        if settings.use_git_crypt:
            probe = GitCrypt(settings.git_crypt_cmd, git_cmd=settings.git_cmd, timeout=settings.command_timeout)
        return EncryptionClassifier.from_settings(settings, status_probe=probe)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _finish(tally: EncryptionTally, *, report: Optional[Path], github_env: Optional[Path]) -> None:
    for entry in tally.entries:
        _print_entry(entry)
    _print_summary(tally)
    if report is not None:
        write_json_report(report, tally.to_dict())
    write_github_env(github_env, tally.to_env())
    raise typer.Exit(code=tally.status.exit_code)


def _print_entry(entry: FileEntry) -> None:
    if not entry.required:
        typer.echo(f"ℹ️  {entry.path}: does not need encryption (no matching pattern)")
        return
    print_status("INFO", f"Checking file: {entry.path}")
    if entry.pattern:
        typer.echo(f"  Pattern: {entry.pattern}")
    if entry.error is not None:
        print_status("ERROR", f"ERROR: {entry.path} ({entry.error})")
        typer.echo("")
        return
    result = entry.result
    typer.echo(f"  Confidence Score: {result.confidence}")
    typer.echo(f"  Reasons: {', '.join(result.reasons)}")
    typer.echo(f"  Result: {result.verdict.value}")
    suffix = " (requires manual verification)" if result.verdict is Verdict.SUSPICIOUS else ""
    print_status(_VERDICT_STATUS[result.verdict], f"{result.verdict.value}: {entry.path}{suffix}")
    typer.echo("")


def _print_summary(tally: EncryptionTally) -> None:
    typer.echo("==========================================")
    typer.echo("           ENCRYPTION SCAN SUMMARY")
    typer.echo("==========================================")
    typer.echo(f"Total files scanned: {tally.total}")
    typer.echo(f"Not requiring encryption: {len(tally.not_required)}")
    typer.echo(f"Encrypted files: {len(tally.encrypted)}")
    typer.echo(f"Unencrypted files: {len(tally.unencrypted)}")
    typer.echo(f"Suspicious files: {len(tally.suspicious)}")
    typer.echo(f"Errors: {len(tally.errors)}")
    print_block("UNENCRYPTED FILES FOUND:", tally.unencrypted, status="ERROR")
    print_block("SUSPICIOUS FILES (manual verification needed):", tally.suspicious, status="WARNING")
    print_block("FILES THAT COULD NOT BE READ:", [f"{e.path} ({e.error})" for e in tally.errors], status="ERROR")
    typer.echo("")
    status = tally.status
    if status is BatchStatus.NEUTRAL:
        print_status("INFO", "NEUTRAL: no candidate files to check")
    elif status is BatchStatus.FAIL:
        print_status("ERROR", "FAILED: found files that should be encrypted but are not")
    else:
        print_status("SUCCESS", "PASSED: all required files are properly encrypted")


if __name__ == "__main__":  # pragma: no cover
    app()

"""Command line interface for mangadrop."""

from __future__ import annotations

import copy
import difflib
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Sequence

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table

from mangadrop.assembly.models import MissingFilesInfo, SeriesImportInfo
from mangadrop.config import ConfigError, ConfigManager, MangadropConfig, resolve_with_precedence
from mangadrop.config.models import LoggingSettings
from mangadrop.importer import ImportResult, ImportService
from mangadrop.ingestion import DirectoryScanner
from mangadrop.library import LibraryError, LibraryRepository
from mangadrop.pairing import (
    ArchiveSource,
    DirectorySource,
    PairedSource,
    PairingEngine,
    decide_import_routing,
)

console = Console()
err_console = Console(stderr=True)

LOG_PATH = Path("~/.mangadrop/mangadrop.log")
MISSING_PREVIEW_LIMIT = 10

_log_handlers: list[logging.Handler] = []


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Args:
        target: Mapping to mutate in-place.
        path: Sequence of keys representing the nested location.
        value: Value to assign at the nested location.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _resolve_output_modes(
    ctx: click.Context,
    config: MangadropConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults for quiet/summary output.

    Returns:
        tuple[bool, bool]: Effective ``(quiet, summary_only)`` flags.

    Raises:
        click.ClickException: If the flags conflict.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> None:
    """Attach a rotating log file (and optionally a console handler) to the package logger."""

    logger = logging.getLogger("mangadrop")
    for handler in _log_handlers:
        logger.removeHandler(handler)
        handler.close()
    _log_handlers.clear()

    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown logging level: {settings.level}")

    log_path = LOG_PATH.expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=settings.max_size_mb * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(name)s :: %(message)s")
    )
    file_handler.setLevel(level)
    _log_handlers.append(file_handler)

    if verbose:
        console_handler = RichHandler(console=err_console, show_path=False)
        console_handler.setLevel(logging.DEBUG)
        _log_handlers.append(console_handler)
        level = logging.DEBUG

    for handler in _log_handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


def _load_config(cli_overrides: dict[str, Any] | None = None) -> MangadropConfig:
    manager = ConfigManager()
    manager.ensure_exists()
    return manager.load(cli_overrides=cli_overrides)


def _library_root(config: MangadropConfig) -> Path:
    return Path(config.library.path).expanduser()


def _source_kind(pairing: PairedSource) -> str:
    if pairing.image_only:
        return "images"
    return pairing.source.type


def _file_count(pairing: PairedSource) -> int:
    if isinstance(pairing.source, ArchiveSource):
        return 1
    if isinstance(pairing.source, DirectorySource):
        return len(pairing.source.files)
    return len(pairing.source.merged_files())


def _format_size(size: float) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _pairing_payload(pairing: PairedSource) -> dict[str, Any]:
    return {
        "id": pairing.id,
        "title": pairing.display_title,
        "base_path": pairing.base_path,
        "type": pairing.source.type,
        "metadata": pairing.metadata_file.name if pairing.metadata_file else None,
        "image_only": pairing.image_only,
        "files": _file_count(pairing),
        "estimated_size": int(pairing.estimated_size),
    }


def _result_payload(result: ImportResult, library: Path) -> dict[str, Any]:
    payload = result.model_dump(mode="json")
    payload["library"] = str(library)
    return payload


class ClickPrompt:
    """Interactive confirmations on the terminal."""

    def __init__(self, *, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def confirm_missing_files(self, info: MissingFilesInfo) -> bool:
        if self.assume_yes:
            return True
        err_console.print(
            f"[yellow]{info.volume_name}: {len(info.missing_files)} of "
            f"{info.total_pages} page images are missing.[/yellow]"
        )
        for path in info.missing_files[:MISSING_PREVIEW_LIMIT]:
            err_console.print(f"  - {path}")
        remaining = len(info.missing_files) - MISSING_PREVIEW_LIMIT
        if remaining > 0:
            err_console.print(f"  ... and {remaining} more")
        return click.confirm("Import with placeholder pages?", default=False, err=True)

    def confirm_image_only(self, series: Sequence[SeriesImportInfo], total_volumes: int) -> bool:
        if self.assume_yes:
            return True
        table = Table(title="Volumes without OCR data")
        table.add_column("Series")
        table.add_column("Volumes", justify="right")
        for entry in series:
            table.add_row(entry.series_name, str(entry.volume_count))
        err_console.print(table)
        return click.confirm(
            f"Import {total_volumes} volume(s) without OCR data?", default=True, err=True
        )


class ConsoleNotifier:
    """Print notifications honoring quiet/summary preferences."""

    _STYLES = {"warning": "yellow", "error": "red", "info": "cyan"}

    def __init__(self, *, quiet: bool, summary_only: bool, json_output: bool = False) -> None:
        self.quiet = quiet
        self.summary_only = summary_only
        self.json_output = json_output

    def notify(self, message: str, *, level: str = "info") -> None:
        if self.json_output:
            return
        mode = level if level in {"warning", "error"} else "detail"
        style = self._STYLES.get(level, "cyan")
        _emit_message(
            f"[{style}]{message}[/{style}]",
            mode=mode,
            quiet=self.quiet,
            summary_only=self.summary_only,
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="mangadrop")
def cli() -> None:
    """Import manga volumes with mokuro OCR data into a local library.

    Returns:
        None: This function is invoked for its side effects.
    """


@cli.command("import")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--library",
    "library",
    type=click.Path(file_okay=False, path_type=str),
    help="Library directory to import into.",
)
@click.option("-y", "--yes", "assume_yes", is_flag=True, help="Answer yes to every confirmation.")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to the terminal.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the import.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def import_command(
    ctx: click.Context,
    paths: tuple[Path, ...],
    library: str | None,
    assume_yes: bool,
    verbose: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Import the volumes found in PATHS (files or folders).

    Args:
        ctx: Click context used for parameter source inspection.
        paths: Dropped files and directories.
        library: Optional library directory override.
        assume_yes: If True, accept missing-page and image-only confirmations.
        verbose: If True, mirror log records to the terminal.
        json_output: If True, emit a JSON result payload.
        summary_mode: When True, limit output to summary lines and warnings.
        quiet: When True, suppress non-error CLI output entirely.

    Raises:
        click.ClickException: If configuration fails or any volume fails to import.
    """

    json_enabled = json_output
    try:
        overrides: dict[str, Any] = {}
        if library:
            overrides["library.path"] = library
        if assume_yes:
            overrides["imports.assume_yes"] = True
        config = _load_config(overrides or None)
        _configure_logging(config.logging, verbose=verbose and not json_output)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
        )

        library_root = _library_root(config)
        service = ImportService(
            config,
            store=LibraryRepository(library_root),
            prompt=ClickPrompt(assume_yes=config.imports.assume_yes),
            notifier=ConsoleNotifier(
                quiet=quiet_enabled, summary_only=summary_only, json_output=json_output
            ),
        )
        result = service.import_paths(list(paths))

        if json_output:
            console.print_json(data=_result_payload(result, library_root))
            if not result.success:
                raise SystemExit(1)
            return

        for error in result.errors:
            _emit_message(
                f"[red]  - {error}[/red]",
                mode="error",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Import",
                library_root,
                {
                    "imported": result.imported,
                    "failed": result.failed,
                    "warnings": len(result.warnings),
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
        if not result.success:
            raise click.ClickException("Import finished with errors.")
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_enabled, original=exc)
    except LibraryError as exc:
        _handle_cli_error(str(exc), code="library_error", json_output=json_enabled, original=exc)
    except click.ClickException as exc:
        _handle_cli_error(str(exc), code="cli_error", json_output=json_enabled, original=exc)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the pairings.")
def pair(paths: tuple[Path, ...], json_output: bool) -> None:
    """Preview how PATHS would be grouped into volumes without importing.

    Args:
        paths: Dropped files and directories.
        json_output: If True, emit JSON instead of a table.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """

    try:
        config = _load_config()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return

    scanner = DirectoryScanner(
        include_hidden=config.scanning.include_hidden,
        follow_symlinks=config.scanning.follow_symlinks,
    )
    engine = PairingEngine(archive_size_multiplier=config.imports.archive_size_multiplier)
    result = engine.pair(scanner.scan_all(paths))
    decision = decide_import_routing(result.pairings)
    routing = "direct" if decision.direct_process is not None else "queued"

    if json_output:
        console.print_json(
            data={
                "pairings": [_pairing_payload(pairing) for pairing in result.pairings],
                "routing": routing if result.pairings else None,
                "warnings": result.warnings,
                "orphaned": result.orphaned,
                "ignored": result.ignored,
            }
        )
        return

    if not result.pairings:
        console.print("[yellow]No importable volumes found.[/yellow]")
    else:
        table = Table(title=f"{len(result.pairings)} volume source(s), routed {routing}")
        table.add_column("Title")
        table.add_column("Source")
        table.add_column("Metadata")
        table.add_column("Files", justify="right")
        table.add_column("Est. size", justify="right")
        for pairing in result.pairings:
            table.add_row(
                pairing.display_title,
                _source_kind(pairing),
                pairing.metadata_file.name if pairing.metadata_file else "-",
                str(_file_count(pairing)),
                _format_size(pairing.estimated_size),
            )
        console.print(table)

    for warning in result.warnings:
        console.print(f"[yellow]{warning}[/yellow]")
    if result.ignored:
        console.print(f"[dim]Ignored {len(result.ignored)} unsupported file(s).[/dim]")


@cli.command("list")
@click.option(
    "--library",
    "library",
    type=click.Path(file_okay=False, path_type=str),
    help="Library directory to read.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing stored volumes.")
def list_command(library: str | None, json_output: bool) -> None:
    """Show the volumes stored in the library.

    Args:
        library: Optional library directory override.
        json_output: If True, emit JSON instead of a table.
    """

    try:
        config = _load_config({"library.path": library} if library else None)
        root = _library_root(config)
        records = LibraryRepository(root).list_volumes()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        return
    except LibraryError as exc:
        _handle_cli_error(str(exc), code="library_error", json_output=json_output, original=exc)
        return

    if json_output:
        console.print_json(
            data={
                "library": str(root),
                "volumes": [
                    record.model_dump(mode="json", exclude={"page_char_counts", "files"})
                    for record in records
                ],
            }
        )
        return

    if not records:
        console.print(f"[yellow]No volumes stored in {root}.[/yellow]")
        return

    table = Table(title=f"Library {root}")
    table.add_column("Series")
    table.add_column("Volume")
    table.add_column("Pages", justify="right")
    table.add_column("Chars", justify="right")
    table.add_column("Missing", justify="right")
    table.add_column("Added")
    for record in records:
        table.add_row(
            record.series_title,
            record.volume_title + (" (images only)" if record.image_only else ""),
            str(record.page_count),
            str(record.character_count),
            str(record.missing_pages) if record.missing_pages else "",
            record.added_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@cli.group()
def config() -> None:
    """Manage mangadrop configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        config = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(config.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException(
            "KEY must specify a dotted path such as 'imports.extract_batch_size'."
        )

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        file_data = manager.load_file_overrides()
        unchanged = copy.deepcopy(file_data)
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=MangadropConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if file_data == unchanged:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = difflib.unified_diff(
        before,
        after,
        fromfile="config.yaml (before)",
        tofile="config.yaml (after)",
        lineterm="",
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        resolve_with_precedence(defaults=MangadropConfig(), file_overrides=parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(parsed)
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()

"""
CLI entrypoint for Mongo Schema Manager.

Provides a dual-mode command-line interface with:
- Human-friendly output: Rich spinners, tables, colored text
- Agent-friendly output: Structured JSON for automation
- Quiet mode: Tab-separated minimal output for shell scripts

Commands:
    process: Apply every pending collection version and refresh enumerators
    validate: Resolve every configured schema offline (no database)
    status: Show stored version markers and pending versions

Settings come from environment variables, files in the config folder, or
defaults (see config.settings): CONFIG_FOLDER, MSM_TYPES, CONNECTION_STRING,
DB_NAME, LOAD_TEST_DATA, ENUMERATORS_COLLECTION, SERVER_SELECTION_TIMEOUT_MS.

Exit codes:
    0: Success
    1: Configuration or schema preprocessing error
    2: Database error (connection or migration step failure)

Examples:
    # Apply all pending versions
    mongo-schema-manager process

    # Use a local config folder and load test data
    mongo-schema-manager process --config-folder ./config --load-test-data

    # CI check without a database
    mongo-schema-manager validate --config-folder ./config --format json
"""

import os
from pathlib import Path
from typing import NoReturn

import typer
from rich.traceback import install as install_rich_traceback

from mongo_schema_manager.config.loader import ConfigRepository
from mongo_schema_manager.config.settings import RuntimeSettings, load_settings
from mongo_schema_manager.exceptions import (
    ConfigurationError,
    PreprocessingError,
    StorageError,
    StorageOperationError,
)
from mongo_schema_manager.processing.processor import (
    WRITING_ENUMERATORS,
    CollectionProcessor,
    validate_all,
)
from mongo_schema_manager.storage.mongo import MongoStore
from mongo_schema_manager.utils.console import (
    error,
    info,
    output_mode,
    print_banner,
    print_final_summary,
    print_plan_table,
    print_transitions_table,
    spinner,
    success,
)
from mongo_schema_manager.utils.logging import setup_logging
from mongo_schema_manager.utils.time import elapsed_seconds, utc_now

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1  # Config validation or directive expansion failed
EXIT_DB_ERROR = 2  # Connection or migration step failed

app = typer.Typer(
    name="mongo-schema-manager",
    help="Evolve MongoDB collection schemas and data through versioned configs",
    add_completion=False,
)


def _configure_output(format: str, quiet: bool, verbose: bool) -> None:
    if format not in ("text", "json"):
        error(f"Invalid format: {format}. Must be 'text' or 'json'")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    output_mode.format = format
    output_mode.quiet = quiet
    # Suppress JSON logs in human mode (unless verbose=True)
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())


def _load_settings(config_folder: Path | None) -> RuntimeSettings:
    environ = dict(os.environ)
    if config_folder is not None:
        environ["CONFIG_FOLDER"] = str(config_folder)
    return load_settings(environ)


def _create_store(settings: RuntimeSettings) -> MongoStore:
    return MongoStore(
        settings.connection_string.get_secret_value(),
        settings.db_name,
        enumerators_collection=settings.enumerators_collection,
        server_selection_timeout_ms=settings.server_selection_timeout_ms,
    )


def _storage_failure_message(e: StorageOperationError) -> str:
    if e.step == WRITING_ENUMERATORS:
        return f"Writing the enumerator mirror failed: {e}"
    if e.version is None:
        return f"Database error on collection '{e.collection}': {e}"
    return f"Collection '{e.collection}' version {e.version} failed at step {e.step}: {e}"


def _fail(message: str, exit_code: int, error_type: str, **details) -> NoReturn:
    error(message)
    if output_mode.is_agent():
        output_mode.add_json("error_type", error_type)
        for key, value in details.items():
            output_mode.add_json(key, value)
        output_mode.flush_json()
    raise typer.Exit(exit_code)


CONFIG_FOLDER_OPTION = typer.Option(
    None,
    "--config-folder",
    "-c",
    help="Config folder (overrides CONFIG_FOLDER)",
    file_okay=False,
    dir_okay=True,
)
FORMAT_OPTION = typer.Option(
    "text",
    "--format",
    "-f",
    help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
)
QUIET_OPTION = typer.Option(False, "--quiet", "-q", help="Minimal output (tab-separated values)")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


@app.command()
def process(
    config_folder: Path | None = CONFIG_FOLDER_OPTION,
    load_test_data: bool = typer.Option(
        False,
        "--load-test-data",
        help="Load <collection>-<M.m.p> test data for every applied version",
    ),
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Apply all pending collection versions, then write the enumerator mirror.

    For each collection and each version newer than its stored marker:
    clear validation, drop indexes, run aggregations, create indexes, apply
    the preprocessed schema, load test data, update the version marker.

    A failure stops the run. Steps already completed are NOT rolled back;
    the report names the collection, version and failing step.

    Exit codes:
      0: All pending versions applied
      1: Configuration or schema preprocessing error
      2: Database error
    """
    _configure_output(format, quiet, verbose)
    print_banner(_read_version())
    started = utc_now()

    try:
        settings = _load_settings(config_folder)
        repository = ConfigRepository(settings.config_folder, settings.msm_types_folder)
        registry = repository.load_enumerators()
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR, "configuration_error")

    store = _create_store(settings)
    try:
        with spinner(f"Connecting to database '{settings.db_name}'..."):
            store.connect()

        processor = CollectionProcessor(
            repository,
            store,
            registry,
            load_test_data=settings.load_test_data or load_test_data,
        )
        with spinner("Processing collections..."):
            summary = processor.process_all()

    except StorageOperationError as e:
        _fail(
            _storage_failure_message(e),
            EXIT_DB_ERROR,
            "storage_error",
            collection=e.collection,
            version=e.version,
            step=e.step,
        )
    except StorageError as e:
        _fail(f"Database error: {e}", EXIT_DB_ERROR, "storage_error")
    except (ConfigurationError, PreprocessingError) as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR, "configuration_error")
    finally:
        store.disconnect()

    for transition in summary.transitions:
        success(
            f"{transition.collection}: {transition.from_version} -> {transition.to_version}"
        )
    if not summary.transitions:
        info("All collections are up to date")

    print_transitions_table(
        [
            {
                "collection": t.collection,
                "from_version": t.from_version,
                "to_version": t.to_version,
                "steps": t.steps,
            }
            for t in summary.transitions
        ]
    )
    print_final_summary(
        collections=len(summary.collections),
        applied=len(summary.transitions),
        enumerator_snapshots=summary.enumerator_snapshots,
        duration_seconds=elapsed_seconds(started),
    )


@app.command()
def validate(
    config_folder: Path | None = CONFIG_FOLDER_OPTION,
    format: str = FORMAT_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Validate every collection config and resolve every schema, offline.

    Checks:
    - Collection configs parse and pass validation
    - No collection declares the same version twice
    - Enumerator snapshots are contiguous
    - Every schema file exists and all msm directives resolve

    Exit codes:
      0: Configuration is valid
      1: Configuration is invalid
    """
    _configure_output(format, False, verbose)

    try:
        with spinner("Validating configuration..."):
            settings = _load_settings(config_folder)
            repository = ConfigRepository(settings.config_folder, settings.msm_types_folder)
            registry = repository.load_enumerators()
            checked = validate_all(repository, registry)
    except (ConfigurationError, PreprocessingError) as e:
        if output_mode.is_agent():
            output_mode.add_json("valid", False)
        _fail(f"Validation failed: {e}", EXIT_CONFIG_ERROR, type(e).__name__)

    success("Configuration is valid")
    info(f"Enumerator snapshots: {len(registry)}")
    for collection, versions in checked.items():
        info(f"{collection}: {versions} versions")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("enumerator_snapshots", len(registry))
        output_mode.add_json("collections", checked)
        output_mode.flush_json()


@app.command()
def status(
    config_folder: Path | None = CONFIG_FOLDER_OPTION,
    format: str = FORMAT_OPTION,
    quiet: bool = QUIET_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    Show each collection's stored version and the versions still pending.

    Reads version markers only; nothing is changed.
    """
    _configure_output(format, quiet, verbose)

    try:
        settings = _load_settings(config_folder)
        repository = ConfigRepository(settings.config_folder, settings.msm_types_folder)
    except ConfigurationError as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR, "configuration_error")

    store = _create_store(settings)
    try:
        store.connect()
        processor = CollectionProcessor(repository, store, repository.load_enumerators())
        plans = processor.plan()
    except StorageError as e:
        _fail(f"Database error: {e}", EXIT_DB_ERROR, "storage_error")
    except (ConfigurationError, PreprocessingError) as e:
        _fail(f"Configuration error: {e}", EXIT_CONFIG_ERROR, "configuration_error")
    finally:
        store.disconnect()

    print_plan_table(
        [
            {
                "collection": plan.collection,
                "current_version": plan.current_version,
                "pending": plan.pending,
            }
            for plan in plans
        ]
    )
    output_mode.flush_json()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    Mongo Schema Manager - versioned schemas, indexes and data for MongoDB.

    Use 'mongo-schema-manager COMMAND --help' for detailed command documentation.
    """
    if version:
        from rich.console import Console

        Console().print(
            f"[bold cyan]mongo-schema-manager[/bold cyan] version {_read_version()}"
        )
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        from rich.console import Console

        console = Console()
        console.print("[yellow]Use --help to see available commands[/yellow]")
        console.print()
        console.print("Commands:")
        console.print("  process   Apply pending versions to every collection")
        console.print("  validate  Resolve all schemas without a database")
        console.print("  status    Show stored and pending versions")


def _read_version() -> str:
    """Read version from package metadata (pyproject.toml)."""
    try:
        from importlib.metadata import version

        return version("mongo-schema-manager")
    except Exception:
        # Fallback if package metadata is not available
        return "0.1.0"


if __name__ == "__main__":
    app()

# cli.py
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click

from rdedit import document, settings
from rdedit.api_client import RundeckClient, RundeckError, rundeck_version
from rdedit.connection import ConnectionStore, require
from rdedit.errors import MissingConnection, ParseError, StateFileError, UserAbandoned
from rdedit.locator import list_script_commands
from rdedit.sessions import SessionRegistry
from rdedit.sync import SyncEngine
from rdedit.ui.console import Console, get_console, set_console
from rdedit.ui.prompts import Prompter
from rdedit.upload import UploadReconciler, ensure_project
from rdedit.watcher import SessionWatcher

CONNECT_SUGGESTION = "Set up a connection first:\n  rdedit connect"


def _store(ctx) -> ConnectionStore:
    return ConnectionStore(ctx.obj["home"] / settings.CONNECTION_FILE)


def _registry(ctx) -> SessionRegistry:
    return SessionRegistry(ctx.obj["home"] / settings.SESSIONS_FILE, temp_dir=settings.TEMP_DIR)


def _fail(ctx, exc: Optional[BaseException] = None) -> None:
    """Exit with status 1, printing the traceback in debug mode."""
    if exc is not None and (ctx.obj or {}).get("debug", False):
        import traceback
        traceback.print_exception(type(exc), exc, exc.__traceback__)
    sys.exit(1)


def _print_transport_error(console: Console, title: str, e: RundeckError) -> None:
    details = []
    if e.status is not None:
        details.append(f"Status: {e.status}")
    if e.body:
        details.append(e.body.strip())
    console.print_error(
        title,
        str(e),
        details=details or None,
        suggestion="Check the server URL, token and project, then try again.",
    )


def _print_state_error(console: Console, e: StateFileError) -> None:
    if Path(e.path).name == settings.CONNECTION_FILE:
        suggestion = "Reset the stored connection:\n  rdedit clear-connection"
    else:
        suggestion = f"Fix or delete {e.path} (deleting it forgets all edit sessions)."
    console.print_error("Unreadable state file", str(e), suggestion=suggestion)


def _print_import_result(console: Console, result: dict) -> None:
    # Rundeck answers 200 even when individual jobs fail to import
    for entry in result.get("failed") or []:
        name = entry.get("name") if isinstance(entry, dict) else entry
        error = entry.get("error") if isinstance(entry, dict) else None
        console.print_warning(f"Job not imported: {name}", details=[error] if error else None)
    for entry in result.get("skipped") or []:
        name = entry.get("name") if isinstance(entry, dict) else entry
        console.print_warning(f"Job skipped: {name}")


def _load_document(ctx, job_file: Path):
    """Load a job document for a read path; parse errors mean "no scripts"."""
    console = get_console()
    try:
        return document.load(job_file)
    except ParseError as e:
        console.print_warning(f"No script commands found in {job_file}", details=[str(e)])
        _fail(ctx, e)
    except (OSError, UnicodeDecodeError) as e:
        console.print_error("Could not read job file", str(e))
        _fail(ctx, e)


class RdeditGroup(click.Group):
    """Reports a corrupt state file the same way whichever command hit it."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except StateFileError as e:
            _print_state_error(get_console(), e)
            _fail(ctx, e)


@click.group(cls=RdeditGroup)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.option(
    "--home",
    default=settings.RDEDIT_HOME,
    show_default=True,
    help="Directory holding the stored connection and edit sessions",
)
@click.pass_context
def cli(ctx, debug, home):
    """rdedit: edit scripts inside Rundeck job definitions and upload them."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["home"] = Path(home).expanduser()


# ---------------------------------------------------------------------
# Connection commands
# ---------------------------------------------------------------------

@cli.command()
@click.option("--token", default=None, help="Rundeck API token (prompted, hidden, if omitted)")
@click.option("--url", default=None, help="Rundeck server URL, e.g. https://rundeck.example.com")
@click.option("--project", default=None, help="Default project for uploads (optional)")
@click.pass_context
def connect(ctx, token, url, project):
    """Store a Rundeck connection after checking that it works."""
    console = get_console()
    prompter = Prompter()

    if token is None:
        token = prompter.ask_text("Enter your Rundeck API Token", hide_input=True)
    if url is None:
        url = prompter.ask_text("Enter your Rundeck server URL (e.g. https://rundeck.example.com)")
    if project is None:
        project = prompter.ask_text("Enter your Rundeck project name (optional, leave empty to set later)")

    if not token or not url:
        console.print_error("Missing connection details", "API token and server URL are required.")
        _fail(ctx)

    try:
        info = RundeckClient(url, token).system_info()
    except RundeckError as e:
        _print_transport_error(console, "Failed to connect to Rundeck", e)
        _fail(ctx, e)

    _store(ctx).save(token, url, project)
    message = f"Connected to Rundeck: {rundeck_version(info)} at {url}"
    if project:
        message += f" (Project: {project})"
    console.print_success(message)


@cli.command("test-connection")
@click.pass_context
def test_connection(ctx):
    """Check that the stored connection can reach Rundeck."""
    console = get_console()
    try:
        conn = require(_store(ctx))
        info = RundeckClient(conn.url, conn.token).system_info()
    except MissingConnection as e:
        console.print_error("No connection", str(e), suggestion=CONNECT_SUGGESTION)
        _fail(ctx, e)
    except RundeckError as e:
        _print_transport_error(console, "Rundeck connection failed", e)
        _fail(ctx, e)

    console.print_success(f"Rundeck connection OK: {rundeck_version(info)} at {conn.url}")


@cli.command("clear-connection")
@click.pass_context
def clear_connection(ctx):
    """Forget the stored token, URL and project."""
    _store(ctx).clear()
    get_console().print_success("Rundeck connection details have been cleared.")


@cli.command("show-connection")
@click.pass_context
def show_connection(ctx):
    """Show the stored connection (token masked)."""
    get_console().print_connection(_store(ctx).get())


# ---------------------------------------------------------------------
# Script editing
# ---------------------------------------------------------------------

@cli.command()
@click.argument("job_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def scripts(ctx, job_file):
    """List the script commands of a job file."""
    doc = _load_document(ctx, job_file)
    get_console().print_scripts(str(job_file), list_script_commands(doc))


@cli.command()
@click.argument("job_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--index", type=int, default=None, help="Command index to edit (skips the pick-list)")
@click.option("--editor/--no-editor", default=True, show_default=True, help="Open the temp file in an editor")
@click.option("--editor-cmd", default=None, help="Editor command (defaults to $VISUAL / $EDITOR)")
@click.pass_context
def edit(ctx, job_file, index, editor, editor_cmd):
    """Open one script of a job file for editing."""
    console = get_console()
    doc = _load_document(ctx, job_file)
    refs = list_script_commands(doc)
    if not refs:
        console.print_warning(f"No script commands found in {job_file}")
        _fail(ctx)

    if index is not None:
        ref = next((r for r in refs if r.index == index), None)
        if ref is None:
            console.print_error(
                "No such script",
                f"Command #{index} of {job_file} is not a script command.",
                details=[r.label for r in refs],
            )
            _fail(ctx)
    elif len(refs) == 1:
        ref = refs[0]
    else:
        pos = Prompter().choose("Select a script to edit", [r.label for r in refs])
        if pos is None:
            console.print_info("No script selected.")
            _fail(ctx)
        ref = refs[pos]

    registry = _registry(ctx)
    try:
        session = registry.open(job_file, ref.index, ref.script, ref.extension)
    except OSError as e:
        console.print_error("Could not open edit session", str(e))
        _fail(ctx, e)

    console.print_info(f"Editing command #{ref.index} ({ref.description}) in {session.session_id}")
    if not editor:
        console.print_info("Save the file, then run `rdedit sync <file>` or keep `rdedit watch` running.")
        return

    try:
        click.edit(filename=session.session_id, editor=editor_cmd)
    except click.ClickException as e:
        console.print_error("Editor failed", e.format_message())
        _fail(ctx, e)

    current = Path(session.session_id).read_text(encoding="utf-8")
    if current == ref.script:
        console.print_info("No changes to sync.")
        return
    if not SyncEngine(registry).on_saved(session.session_id):
        _fail(ctx)


@cli.command()
@click.argument("job_file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--prune", is_flag=True, default=False, help="Forget sessions whose temp file is gone")
@click.pass_context
def sessions(ctx, job_file, prune):
    """List edit sessions, optionally only those of one job file."""
    console = get_console()
    registry = _registry(ctx)
    if prune:
        for s in registry.prune():
            console.print_info(f"Pruned {s.session_id}")
    items = registry.sessions_for(job_file) if job_file else registry.all()
    console.print_sessions(items)


@cli.command()
@click.argument("temp_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def sync(ctx, temp_file):
    """Write a saved temp file back into its job file."""
    console = get_console()
    registry = _registry(ctx)
    if registry.lookup(temp_file) is None:
        console.print_error(
            "Unknown edit session",
            f"{temp_file} was not opened by rdedit edit.",
            suggestion="List open sessions:\n  rdedit sessions",
        )
        _fail(ctx)
    if not SyncEngine(registry).on_saved(temp_file):
        _fail(ctx)


@cli.command()
@click.option("--interval", default=settings.WATCH_INTERVAL, type=float, show_default=True, help="Polling interval in seconds")
@click.option("--workers", default=None, type=int, help="Number of parallel sync workers")
@click.pass_context
def watch(ctx, interval, workers):
    """Sync edit sessions back into their job files whenever they are saved."""
    console = get_console()
    registry = _registry(ctx)
    watcher = SessionWatcher(registry, SyncEngine(registry), interval=interval, max_workers=workers)
    try:
        watcher.run()
    except StateFileError as e:
        _print_state_error(console, e)
        _fail(ctx, e)
    except Exception as e:
        console.print_exception(e)
        _fail(ctx, e)


# ---------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------

@cli.command()
@click.argument("job_file", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def upload(ctx, job_file):
    """Upload a job file, including unsynced script edits, to Rundeck."""
    console = get_console()
    store = _store(ctx)
    prompter = Prompter()

    try:
        conn = require(store)
        project = ensure_project(store, prompter)
        if job_file is None:
            job_file = prompter.ask_path("Select a job file to upload to Rundeck")
            if job_file is None:
                raise UserAbandoned("No file selected for upload.")
        reconciler = UploadReconciler(_registry(ctx), RundeckClient(conn.url, conn.token))
        result = reconciler.upload(job_file, project)
    except MissingConnection as e:
        console.print_error("No connection", str(e), suggestion=CONNECT_SUGGESTION)
        _fail(ctx, e)
    except UserAbandoned as e:
        console.print_error("Upload cancelled", str(e))
        _fail(ctx, e)
    except ParseError as e:
        console.print_error("Invalid job file", f"Could not parse {job_file}", details=[str(e)])
        _fail(ctx, e)
    except (OSError, UnicodeDecodeError) as e:
        console.print_error("Could not read job file", str(e))
        _fail(ctx, e)
    except RundeckError as e:
        _print_transport_error(console, "Failed to upload job file", e)
        _fail(ctx, e)

    _print_import_result(console, result)
    console.print_success(
        f"Job file uploaded to Rundeck project '{project}'. Result: {json.dumps(result)}"
    )


if __name__ == "__main__":
    cli()

#!/usr/bin/env python3
"""
ndef: CLI for notedefs

Usage:
    ndef lookup "phrase"               # Show a definition
    ndef scan notes/meeting.md         # Defined phrases in a note
    ndef usages "phrase"               # Where a phrase is used
    ndef add "Phrase" -c "..."         # Append a definition
    ndef watch                         # Keep the index live
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from . import __version__ as NOTEDEFS_VERSION
from ._logging import configure_logging, set_quiet_mode
from .config import get_vault_root, load_settings, save_settings
from .editing import DefinitionEditor
from .errors import DefinitionError, navigation_error, validation_error
from .manager import DefinitionManager
from .models import Definition
from .vault import FileSystemVault


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def output(data: Any, as_json: bool = False) -> None:
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def _handle_error(ctx: click.Context, error: Exception, exit_code: int = 1) -> NoReturn:
    """Print an error (JSON when --json was given) and exit."""
    as_json = ctx.params.get("as_json", False)

    if isinstance(error, DefinitionError):
        if as_json:
            click.echo(error.to_json(), err=True)
        else:
            click.echo(f"Error: {error.user_message}", err=True)
    else:
        if as_json:
            click.echo(json.dumps({"error": {"kind": "unexpected", "message": str(error)}}), err=True)
        else:
            click.echo(f"Error: {error}", err=True)

    sys.exit(exit_code)


def _definition_dict(definition: Definition) -> dict[str, Any]:
    return definition.model_dump()


def _format_definition(definition: Definition) -> str:
    location = definition.source_file
    if definition.line_number:
        location += f":{definition.line_number}"

    lines = [f"{definition.phrase}  ({location})"]
    if definition.aliases:
        lines.append(f"aliases: {', '.join(definition.aliases)}")
    lines.append("")
    lines.append(definition.content)
    return "\n".join(lines)


async def _open_manager(ctx: click.Context) -> DefinitionManager:
    vault_root: Path = ctx.obj["vault"]
    settings = load_settings(vault_root)
    manager = DefinitionManager(
        FileSystemVault(vault_root),
        settings,
        notify=lambda message: click.echo(f"Warning: {message}", err=True),
    )
    await manager.load_definitions()
    return manager


def _select(manager: DefinitionManager, phrase: str, file: str | None) -> Definition:
    definitions = manager.index.get_definitions(phrase, [file] if file else None)
    if not definitions:
        raise navigation_error(f"No definition found for: {phrase}", phrase=phrase)
    if len(definitions) > 1:
        files = sorted({d.source_file for d in definitions})
        raise validation_error(
            f'"{phrase}" is defined in several places ({", ".join(files)}); pass --file',
            phrase=phrase,
        )
    return definitions[0]


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=NOTEDEFS_VERSION, prog_name="ndef")
@click.option(
    "--vault",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="NOTEDEFS_VAULT",
    help="Vault root directory (default: current directory)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="NOTEDEFS_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, quiet: bool):
    """ndef: definitions for your markdown notes.

    \b
    Quick start:
      ndef set-folder Glossary             # Where definitions live
      ndef lookup "API"                    # Show a definition
      ndef scan notes/today.md             # Defined phrases in a note
      ndef usages "API"                    # Notes using a phrase

    \b
    Edit definitions:
      ndef add "API" -a "interface" -c "Application programming interface."
      ndef update "API" -c "New text"
      ndef delete "API"
      ndef register Glossary/api.md --type atomic
      ndef add-context notes/today.md Glossary/definitions.md
    """
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["vault"] = vault or get_vault_root()
    if quiet:
        set_quiet_mode(True)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, as_json: bool):
    """Show the definition folder and what is indexed."""

    async def _run():
        manager = await _open_manager(ctx)
        return manager.index.status(manager.definition_folder)

    try:
        index_status = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    if as_json:
        output(index_status.model_dump(mode="json"), as_json=True)
        return

    click.echo(f"Vault:             {ctx.obj['vault']}")
    click.echo(f"Definition folder: {index_status.definition_folder or '(not set)'}")
    click.echo(f"Definitions:       {index_status.definitions}")
    click.echo(f"Lookup keys:       {index_status.keys}")
    if index_status.files:
        click.echo("Definition files:")
        for path in index_status.files:
            click.echo(f"  {path}")


@cli.command()
@click.argument("phrase")
@click.option("--context", "-x", "context_files", multiple=True, help="Restrict to definition file")
@click.option("--note", help="Use the def-context of this note")
@click.option("--all", "show_all", is_flag=True, help="Show every matching definition")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def lookup(
    ctx: click.Context,
    phrase: str,
    context_files: tuple[str, ...],
    note: str | None,
    show_all: bool,
    as_json: bool,
):
    """Show the definition of a phrase or alias."""

    async def _run():
        manager = await _open_manager(ctx)
        context = list(context_files) or None
        if note and context is None:
            context = await manager.context_for(note)
        if show_all:
            return manager.index.get_definitions(phrase, context)
        found = manager.index.get_definition(phrase, context)
        return [found] if found else []

    try:
        definitions = run_async(_run())
        if not definitions:
            raise navigation_error(f"No definition found for: {phrase}", phrase=phrase)
    except DefinitionError as e:
        _handle_error(ctx, e)

    if as_json:
        output([_definition_dict(d) for d in definitions], as_json=True)
    else:
        click.echo("\n\n".join(_format_definition(d) for d in definitions))


@cli.command("list")
@click.option("--context", "-x", "context_files", multiple=True, help="Restrict to definition file")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_definitions(ctx: click.Context, context_files: tuple[str, ...], as_json: bool):
    """List every indexed definition."""

    async def _run():
        manager = await _open_manager(ctx)
        return manager.index.get_all_definitions(list(context_files) or None)

    try:
        definitions = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    if as_json:
        output([_definition_dict(d) for d in definitions], as_json=True)
        return

    for definition in definitions:
        aliases = f"  [{', '.join(definition.aliases)}]" if definition.aliases else ""
        click.echo(f"{definition.phrase}{aliases}  {definition.source_file}")


@cli.command()
@click.argument("note")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def scan(ctx: click.Context, note: str, as_json: bool):
    """List defined phrases found in a note."""

    async def _run():
        manager = await _open_manager(ctx)
        text = await manager.vault.read(note)
        return text, await manager.scan_note(note, text)

    try:
        text, results = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    if as_json:
        output(
            [
                {
                    "phrase": match.phrase,
                    "from": match.from_,
                    "to": match.to,
                    "definition": _definition_dict(definition) if definition else None,
                }
                for match, definition in results
            ],
            as_json=True,
        )
        return

    for match, definition in results:
        line = text.count("\n", 0, match.from_) + 1
        source = definition.source_file if definition else "?"
        click.echo(f"{line}:{match.phrase}  -> {source}")


@cli.command()
@click.argument("phrase")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def usages(ctx: click.Context, phrase: str, as_json: bool):
    """Find lines in notes that use a phrase."""

    async def _run():
        manager = await _open_manager(ctx)
        return await manager.find_usages(phrase)

    try:
        found = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    if as_json:
        output([u.model_dump() for u in found], as_json=True)
        return

    if not found:
        click.echo(f"No usages of {phrase!r}")
    for usage in found:
        click.echo(f"{usage.file}:{usage.line}: {usage.text}")


# ─────────────────────────────────────────────────────────────────────────────
# Editing
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("phrase")
@click.option("--content", "-c", required=True, help="Definition text")
@click.option("--aliases", "-a", default="", help="Comma-separated aliases")
@click.option("--file", "-f", "target_file", help="Consolidated file to append to")
@click.pass_context
def add(ctx: click.Context, phrase: str, content: str, aliases: str, target_file: str | None):
    """Add a definition to a consolidated file."""

    async def _run():
        manager = await _open_manager(ctx)
        target = await DefinitionEditor(manager).add_definition(phrase, aliases, content, target_file)
        save_settings(ctx.obj["vault"], manager.settings)
        return target

    try:
        target = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    click.echo(f"Definition added: {phrase.strip()} ({target})")


@cli.command()
@click.argument("phrase")
@click.option("--file", "-f", "source_file", help="File holding the definition")
@click.option("--phrase", "new_phrase", help="New phrase")
@click.option("--aliases", "-a", help="Comma-separated aliases (replaces existing)")
@click.option("--content", "-c", help="New definition text")
@click.pass_context
def update(
    ctx: click.Context,
    phrase: str,
    source_file: str | None,
    new_phrase: str | None,
    aliases: str | None,
    content: str | None,
):
    """Change a definition's phrase, aliases or text."""

    async def _run():
        manager = await _open_manager(ctx)
        definition = _select(manager, phrase, source_file)
        return await DefinitionEditor(manager).update_definition(
            definition,
            new_phrase if new_phrase is not None else definition.phrase,
            aliases if aliases is not None else definition.aliases,
            content if content is not None else definition.content,
        )

    try:
        path = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    click.echo(f"Definition updated ({path})")


@cli.command()
@click.argument("phrase")
@click.option("--file", "-f", "source_file", help="File holding the definition")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, phrase: str, source_file: str | None, yes: bool):
    """Delete a definition (atomic files are removed entirely)."""

    async def _run():
        manager = await _open_manager(ctx)
        definition = _select(manager, phrase, source_file)
        if not yes:
            click.confirm(f"Delete {definition.phrase!r} from {definition.source_file}?", abort=True)
        await DefinitionEditor(manager).delete_definition(definition)

    try:
        run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    click.echo("Definition deleted")


@cli.command()
@click.argument("path")
@click.option(
    "--type",
    "def_type",
    type=click.Choice(["atomic", "consolidated"]),
    required=True,
    help="Definition file layout",
)
@click.pass_context
def register(ctx: click.Context, path: str, def_type: str):
    """Mark a file as a definition file."""

    async def _run():
        manager = await _open_manager(ctx)
        await DefinitionEditor(manager).register_definition_file(path, def_type)

    try:
        run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    click.echo(f"Registered as {def_type} definition file")


@cli.command("add-context")
@click.argument("note")
@click.argument("definition_file")
@click.pass_context
def add_context(ctx: click.Context, note: str, definition_file: str):
    """Limit a note to the definitions of DEFINITION_FILE (cumulative)."""

    async def _run():
        manager = await _open_manager(ctx)
        await DefinitionEditor(manager).add_context(note, definition_file)

    try:
        run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    click.echo(f"Added context: {definition_file}")


@cli.command("set-folder")
@click.argument("folder")
@click.option("--divider", type=click.Choice(["hyphens", "both"]), help="Block divider pattern")
@click.pass_context
def set_folder(ctx: click.Context, folder: str, divider: str | None):
    """Set the definition folder (and optionally the divider pattern)."""
    vault_root: Path = ctx.obj["vault"]

    async def _run():
        settings = load_settings(vault_root)
        if divider:
            settings.divider_pattern = divider
        manager = DefinitionManager(
            FileSystemVault(vault_root),
            settings,
            notify=lambda message: click.echo(f"Warning: {message}", err=True),
        )
        result = await manager.set_definition_folder(folder)
        save_settings(vault_root, manager.settings)
        return manager, result

    try:
        manager, result = run_async(_run())
    except DefinitionError as e:
        _handle_error(ctx, e)

    click.echo(f"Definition folder set to: {manager.definition_folder}")
    if result.error is None:
        click.echo(f"Indexed {result.definitions} definitions from {result.files_indexed} files")


@cli.command()
@click.pass_context
def watch(ctx: click.Context):
    """Keep the index live and report changes until interrupted."""
    from .watcher import FileWatcher

    async def _run():
        manager = await _open_manager(ctx)

        def report() -> None:
            click.echo(
                f"{len(manager.index)} definitions in {len(manager.index.files())} files",
            )

        manager.subscribe(report)
        report()
        with FileWatcher(manager, manager.vault):
            await asyncio.Event().wait()

    try:
        run_async(_run())
    except KeyboardInterrupt:
        click.echo("Stopped")
    except DefinitionError as e:
        _handle_error(ctx, e)


if __name__ == "__main__":
    cli()

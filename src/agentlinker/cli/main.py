"""
Main CLI entry point for agentlinker.

Provides the command-line interface using Click. Every command works on
an explicit start directory (--dir, default: the current directory) and
supports --json for scripting.
"""

import json as _json
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import click as _click
import rich.console as _rich_console
import rich.logging as _rich_logging
import rich.table as _rich_table

import agentlinker
import agentlinker.backup as backup
import agentlinker.config as config
import agentlinker.engine as engine
import agentlinker.linking as linking
import agentlinker.resources as resources

# Custom Click context settings for better help formatting
CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}

_HANDLED_ERRORS = (
    config.MalformedConfigError,
    engine.NoCurrentLevelError,
    engine.NoParentLevelError,
    resources.UnreadableDocumentError,
    linking.UnknownClientError,
    backup.NoSessionError,
)

_scope_option = _click.option(
    "--scope",
    type=_click.Choice(engine.SCOPES),
    default=None,
    help="Link scope (default: monorepo when a parent .agents exists, else project)",
)
_client_option = _click.option(
    "--client",
    "clients",
    multiple=True,
    help="Client to link (repeatable; default: all)",
)
_json_option = _click.option("--json", "json_output", is_flag=True, help="JSON output")


def _configure_logging(level: str) -> None:
    """Route agentlinker's loggers through rich on stderr."""
    logger = _logging.getLogger("agentlinker")
    for handler in list(logger.handlers):
        if isinstance(handler, _rich_logging.RichHandler):
            logger.removeHandler(handler)
    handler = _rich_logging.RichHandler(
        console=_rich_console.Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    logger.addHandler(handler)
    logger.setLevel(level.upper())


def _fail(error: Exception, json_output: bool) -> _typing.NoReturn:
    """Report an error and exit with status 1."""
    if json_output:
        _click.echo(_json.dumps({"error": str(error)}, indent=2))
    else:
        _click.echo(f"Error: {error}", err=True)
    raise SystemExit(1)


def _linker(ctx: _click.Context, scope: str | None) -> engine.Linker:
    return engine.Linker(
        ctx.obj["start_dir"],
        settings=ctx.obj["settings"],
        scope=_typing.cast(engine.LinkScope | None, scope),
    )


def _split_names(value: str | None) -> list[str] | None:
    """Parse a comma-separated option value; None when the option was not given."""
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(agentlinker.__version__, "-v", "--version", prog_name="agentlinker")
@_click.option(
    "--dir",
    "start_dir",
    type=_click.Path(file_okay=False, path_type=_pathlib.Path),
    default=".",
    help="Directory to resolve (default: current directory)",
)
@_click.option("--verbose", is_flag=True, help="Enable verbose output")
@_click.pass_context
def cli(ctx: _click.Context, start_dir: _pathlib.Path, verbose: bool) -> None:
    """
    agentlinker - one canonical .agents folder for every AI coding client.

    \b
    Examples:
        agentlinker status                    # What is linked where
        agentlinker apply --dry-run           # Show the plan
        agentlinker apply --yes               # Link, skipping conflicts
        agentlinker apply --force --yes       # Link, backing up conflicts
        agentlinker undo                      # Revert the last apply
        agentlinker --dir packages/api chain  # Inheritance chain of a package
    """
    settings = config.Settings()
    _configure_logging("debug" if verbose else settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["start_dir"] = start_dir
    ctx.obj["verbose"] = verbose


# =============================================================================
# status
# =============================================================================


def _status_table(statuses: list[linking.ResourceStatus]) -> _rich_table.Table:
    table = _rich_table.Table(title="Link status")
    table.add_column("Resource")
    table.add_column("Linked", justify="right", style="green")
    table.add_column("Need link", justify="right", style="yellow")
    table.add_column("Conflicts", justify="right", style="red")
    table.add_column("Stale", justify="right", style="dim")
    for status in statuses:
        table.add_row(
            status.resource.value,
            str(status.count("linked")),
            str(status.count("missing")),
            str(status.count("conflict")),
            str(status.count("stale")),
        )
    return table


@cli.command()
@_scope_option
@_client_option
@_json_option
@_click.pass_context
def status(
    ctx: _click.Context,
    scope: str | None,
    clients: tuple[str, ...],
    json_output: bool,
) -> None:
    """Show link status per resource type."""
    linker = _linker(ctx, scope)
    try:
        statuses = linker.status(clients)
    except _HANDLED_ERRORS as e:
        _fail(e, json_output)

    if json_output:
        _click.echo(
            _json.dumps(
                {"scope": linker.scope, "resources": [s.to_dict() for s in statuses]},
                indent=2,
            )
        )
        return

    console = _rich_console.Console()
    if not statuses:
        console.print("Nothing to link.")
        return
    console.print(_status_table(statuses))
    for resource_status in statuses:
        for target in resource_status.targets:
            if target.state == "conflict":
                console.print(f"[red]conflict[/red] {target.path} ({target.reason})")
            elif ctx.obj["verbose"] and target.state != "linked":
                console.print(f"{target.state} {target.path}")


# =============================================================================
# apply
# =============================================================================


def _print_migration(migration: linking.MigrationPlan) -> None:
    console = _rich_console.Console()
    for move in migration.moves:
        console.print(f"[cyan]migrate[/cyan] {move.source} -> {move.target}")
    for conflict in migration.conflicts:
        console.print(f"[yellow]differs[/yellow] {conflict.target} (not migrated)")
        for candidate in conflict.candidates:
            console.print(f"          {candidate.source}")


def _print_plan(plan: linking.LinkPlan) -> None:
    console = _rich_console.Console()
    for document in plan.pending_writes:
        console.print(f"[cyan]write[/cyan]   {document.path}")
    for task in plan.tasks:
        if task.action is linking.LinkAction.REMOVE:
            console.print(f"[dim]remove[/dim]  {task.target}")
        else:
            console.print(f"[green]{task.action.value:<7}[/green] {task.target} -> {task.source}")
    for conflict in plan.conflicts:
        console.print(f"[red]conflict[/red] {conflict.target} ({conflict.reason})")


@cli.command()
@_scope_option
@_client_option
@_click.option("--dry-run", is_flag=True, help="Show the plan without changing anything")
@_click.option(
    "--force/--skip-conflicts",
    "force",
    default=None,
    help="Back up and replace conflicting paths, or leave them alone",
)
@_click.option(
    "--no-migrate",
    is_flag=True,
    help="Do not copy existing client files into the canonical folder first",
)
@_click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@_json_option
@_click.pass_context
def apply(
    ctx: _click.Context,
    scope: str | None,
    clients: tuple[str, ...],
    dry_run: bool,
    force: bool | None,
    no_migrate: bool,
    yes: bool,
    json_output: bool,
) -> None:
    """Link the resolved configuration into client directories.

    In the project and global scopes, files clients already hold (a
    CLAUDE.md, .claude/commands/*, ...) are first copied into the canonical
    folder and then replaced by links. Differing copies of one item are
    reported and left alone.
    """
    linker = _linker(ctx, scope)
    try:
        plan = linker.plan(clients)
        migration = linking.MigrationPlan() if no_migrate else linker.migration(clients)
    except _HANDLED_ERRORS as e:
        _fail(e, json_output)

    if dry_run:
        if json_output:
            _click.echo(
                _json.dumps(
                    {
                        "scope": linker.scope,
                        "migration": migration.to_dict(),
                        "plan": plan.to_dict(),
                    },
                    indent=2,
                )
            )
        elif plan.is_empty and migration.is_empty:
            _click.echo("Nothing to do.")
        else:
            _print_migration(migration)
            _print_plan(plan)
        return

    if plan.is_empty and not migration.moves:
        if json_output:
            _click.echo(_json.dumps(backup.ApplyResult().to_dict(), indent=2))
        else:
            _click.echo("Nothing to do.")
        return

    interactive = not yes and not json_output
    if interactive:
        _print_migration(migration)
        _print_plan(plan)

    if force is None:
        force = False
        unresolved = [c for c in plan.conflicts if c.target not in migration.migrated_sources]
        if unresolved and interactive:
            force = _click.confirm(
                f"Back up and replace {len(unresolved)} conflicting path(s)?",
                default=False,
            )

    if interactive and not _click.confirm("Apply these changes?", default=True):
        _click.echo("Aborted.")
        return

    result = linker.apply(plan, force=force, consumers=clients, migration=migration)

    if json_output:
        _click.echo(_json.dumps(result.to_dict(), indent=2))
    else:
        if result.migrated:
            _click.echo(f"Migrated {result.migrated} item(s) into the canonical folder.")
        _click.echo(
            f"Linked {result.linked}, removed {result.removed}, "
            f"wrote {result.written}, skipped {result.skipped} conflict(s)."
        )
        if result.overwritten:
            _click.echo(f"Backed up and replaced {result.overwritten} path(s).")
        if result.session_id:
            _click.echo(f"Backup session: {result.session_id} (agentlinker undo to revert)")
        for failure in result.failures:
            _click.echo(f"Failed: {failure.path}: {failure.error}", err=True)

    if result.failures:
        raise SystemExit(1)


# =============================================================================
# undo
# =============================================================================


@cli.command()
@_scope_option
@_json_option
@_click.pass_context
def undo(ctx: _click.Context, scope: str | None, json_output: bool) -> None:
    """Revert the last apply (or undo) in a scope.

    Undo records its own backup session, so running undo twice re-applies
    the reverted change instead of stepping further back.
    """
    linker = _linker(ctx, scope)
    try:
        result = linker.undo()
    except _HANDLED_ERRORS as e:
        _fail(e, json_output)

    if json_output:
        _click.echo(_json.dumps(result.to_dict(), indent=2))
    else:
        _click.echo(
            f"Undid session {result.undone_session}: "
            f"restored {result.restored}, removed {result.removed}."
        )
        for failure in result.failures:
            _click.echo(f"Failed: {failure.path}: {failure.error}", err=True)

    if result.failures:
        raise SystemExit(1)


# =============================================================================
# chain
# =============================================================================


@cli.command(name="chain")
@_scope_option
@_json_option
@_click.pass_context
def chain_cmd(ctx: _click.Context, scope: str | None, json_output: bool) -> None:
    """Show the inheritance chain and resolved behaviors."""
    linker = _linker(ctx, scope)
    inheritance_chain = linker.chain()
    try:
        resolved = linker.config()
    except _HANDLED_ERRORS as e:
        _fail(e, json_output)

    if json_output:
        _click.echo(
            _json.dumps(
                {
                    "scope": linker.scope,
                    "chain": inheritance_chain.to_dict(),
                    "config": resolved.to_dict(),
                },
                indent=2,
            )
        )
        return

    _click.echo(f"Scope: {linker.scope}")
    for level in inheritance_chain.levels:
        markers = []
        if level.is_global:
            markers.append("global")
        if level.is_current:
            markers.append("current")
        suffix = f" ({', '.join(markers)})" if markers else ""
        _click.echo(f"  {level.rank}. {level.path}{suffix}")
    _click.echo("Behaviors:")
    for resource, behavior in resolved.behaviors.items():
        included = resolved.include_for(resource)
        extra = f" [{', '.join(sorted(included))}]" if included else ""
        _click.echo(f"  {resource.value}: {behavior.value}{extra}")


# =============================================================================
# compose
# =============================================================================


@cli.command()
@_click.option("--include-commands", default=None, help="Comma-separated parent commands to include")
@_click.option("--include-skills", default=None, help="Comma-separated parent skills to include")
@_click.option("--include-hooks", default=None, help="Comma-separated parent hooks to include")
@_click.option(
    "--agents-md",
    type=_click.Choice([b.value for b in config.ExtendBehavior if b is not config.ExtendBehavior.COMPOSE]),
    default=None,
    help="Behavior for AGENTS.md (default: keep the declared one)",
)
@_json_option
@_click.pass_context
def compose(
    ctx: _click.Context,
    include_commands: str | None,
    include_skills: str | None,
    include_hooks: str | None,
    agents_md: str | None,
    json_output: bool,
) -> None:
    """Write a compose declaration for the current level.

    Collections given an include list pick only those parent items. Without
    one, the names already included in config.yaml are kept. Collections
    left without names override (commands, skills) or inherit (hooks).
    Exclude patterns already in config.yaml are kept.
    """
    linker = _linker(ctx, "monorepo")
    include = {
        config.ResourceType.COMMANDS: _split_names(include_commands),
        config.ResourceType.SKILLS: _split_names(include_skills),
        config.ResourceType.HOOKS: _split_names(include_hooks),
    }
    document = config.ExtendBehavior(agents_md) if agents_md else None
    try:
        result = linker.compose(include, document=document)
    except _HANDLED_ERRORS as e:
        _fail(e, json_output)

    if json_output:
        _click.echo(_json.dumps(result.to_dict(), indent=2))
        return

    for resource, names in result.skipped.items():
        if names:
            _click.echo(
                f"Warning: {resource.value} not found in parent: {', '.join(names)}",
                err=True,
            )
    _click.echo(f"Wrote {result.path}")
    for resource, names in result.selected.items():
        listed = f" ({', '.join(names)})" if names else ""
        _click.echo(f"  {resource.value}: {len(names)} selected{listed}")
    _click.echo(f"  AGENTS.md: {result.document.value}")


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="agentlinker")


if __name__ == "__main__":
    main()

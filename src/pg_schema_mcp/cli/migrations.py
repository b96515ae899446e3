"""Migration management commands."""

import click

from .utils import (
    build_context,
    build_store,
    error_handler,
    handle_error,
    output_json,
    output_table,
    quiet_echo,
    success_message,
    wants_json,
)

database_url_option = click.option(
    "--database-url", "-d", help="Database URL (overrides configuration)"
)


@click.group()
def migrations() -> None:
    """Inspect, apply and revert recorded migrations."""
    pass


@migrations.command("list")
@click.pass_context
@error_handler
def list_migrations(ctx: click.Context) -> None:
    """List recorded migrations in creation order."""
    records = build_store(ctx).list_records()

    if wants_json(ctx):
        output_json([record.to_index_entry() for record in records])
        return

    output_table(
        ["ID", "Name", "Type", "Status", "Description"],
        [
            [r.id, r.name, r.kind.value, r.status.value, r.description or ""]
            for r in records
        ],
    )


@migrations.command()
@database_url_option
@click.pass_context
@error_handler
def status(ctx: click.Context, database_url: str | None) -> None:
    """Show applied and pending migration counts."""
    context = build_context(ctx, database_url=database_url)
    try:
        summary = context.migrations.get_migration_status()
    finally:
        context.close()

    if wants_json(ctx):
        output_json(summary)
        return

    click.echo(f"Current migration: {summary['current_migration'] or 'none'}")
    click.echo(f"Recorded migrations: {summary['total_count']}")
    click.echo(f"Applied migrations: {summary['applied_count']}")
    click.echo(f"Pending migrations: {summary['pending_count']}")
    for pending in summary["pending_migrations"]:
        click.echo(f"  - {pending['id']}: {pending['description'] or pending['name']}")


@migrations.command()
@database_url_option
@click.option("--from", "from_id", help="Start applying from this migration ID")
@click.option("--force", is_flag=True, help="Re-apply migrations already applied")
@click.pass_context
@error_handler
def apply(
    ctx: click.Context, database_url: str | None, from_id: str | None, force: bool
) -> None:
    """Apply pending migrations to the database."""
    context = build_context(ctx, database_url=database_url)
    try:
        applied = context.migrations.apply_pending(from_id=from_id, force=force)
    finally:
        context.close()

    if wants_json(ctx):
        output_json({"applied": [record.summary() for record in applied]})
        return

    if not applied:
        quiet_echo(ctx, "No pending migrations to apply.")
        return
    for record in applied:
        quiet_echo(ctx, f"  - {record.id}: {record.description or record.name}")
    success_message(f"Applied {len(applied)} migration(s)", ctx)


@migrations.command()
@database_url_option
@click.argument("migration_id", required=False)
@click.pass_context
@error_handler
def revert(ctx: click.Context, database_url: str | None, migration_id: str | None) -> None:
    """Revert MIGRATION_ID, or the most recent migration."""
    context = build_context(ctx, database_url=database_url)
    try:
        result = context.migrations.revert(migration_id)
    finally:
        context.close()

    if wants_json(ctx):
        output_json(
            {
                "revertedMigration": result.reverted.to_index_entry(),
                "revertSql": result.revert_sql,
            }
        )
        return

    click.echo(result.revert_sql)
    success_message(f"Reverted migration {result.reverted.id}", ctx)


@migrations.command()
@click.pass_context
@error_handler
def verify(ctx: click.Context) -> None:
    """Check migration SQL against recorded checksums."""
    issues = build_store(ctx).verify_all()

    if wants_json(ctx):
        output_json(
            {
                "valid": not issues,
                "issues": [
                    {"migrationId": i.migration_id, "problem": i.problem}
                    for i in issues
                ],
            }
        )
    elif not issues:
        success_message("All migrations match their checksums", ctx)

    if issues:
        for issue in issues:
            click.echo(f"  - {issue.migration_id}: {issue.problem}", err=True)
        handle_error(f"{len(issues)} migration(s) failed verification")

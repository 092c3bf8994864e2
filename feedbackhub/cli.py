import click
from flask.cli import with_appcontext

from feedbackhub.services import applications as app_service
from feedbackhub.services.errors import ServiceError


def _fail(exc: ServiceError):
    detail = exc.extra.get("fields")
    msg = exc.message
    if detail:
        msg += ": " + "; ".join(f"{k} {v}" for k, v in detail.items())
    raise click.ClickException(msg)


@click.group()
def applications():
    """Application (API key) management."""


@applications.command("create")
@click.option("--name", required=True)
@click.option("--slug", required=True)
@click.option("--owner-id", default=None, help="Optional owning-account reference")
@with_appcontext
def applications_create(name, slug, owner_id):
    try:
        row, api_key = app_service.create_application(name, slug, owner_id)
    except ServiceError as exc:
        _fail(exc)
    click.echo(f"Application created id={row.id} slug={row.slug}")
    click.echo(f"API key (shown once, store it now): {api_key}")


@applications.command("list")
@click.option("--active-only", is_flag=True, default=False)
@with_appcontext
def applications_list(active_only):
    rows = app_service.list_applications(include_inactive=not active_only)
    if not rows:
        click.echo("No applications")
        return
    for r in rows:
        state = "active" if r.is_active else "inactive"
        click.echo(f"{r.id}\t{r.slug}\t{r.api_key_prefix}\t{state}\t{r.name}")


@applications.command("rotate-key")
@click.option("--slug", required=True)
@click.confirmation_option(prompt="The current key stops working immediately. Continue?")
@with_appcontext
def applications_rotate_key(slug):
    try:
        row = app_service.get_application_by_slug(slug)
        row, api_key = app_service.rotate_api_key(row.id)
    except ServiceError as exc:
        _fail(exc)
    click.echo(f"Key rotated for slug={row.slug}; previous key is now invalid")
    click.echo(f"API key (shown once, store it now): {api_key}")


@applications.command("deactivate")
@click.option("--slug", required=True)
@with_appcontext
def applications_deactivate(slug):
    try:
        row = app_service.set_active(app_service.get_application_by_slug(slug).id, False)
    except ServiceError as exc:
        _fail(exc)
    click.echo(f"Deactivated slug={row.slug}")


@applications.command("activate")
@click.option("--slug", required=True)
@with_appcontext
def applications_activate(slug):
    try:
        row = app_service.set_active(app_service.get_application_by_slug(slug).id, True)
    except ServiceError as exc:
        _fail(exc)
    click.echo(f"Activated slug={row.slug}")


def register_cli(app):
    app.cli.add_command(applications)

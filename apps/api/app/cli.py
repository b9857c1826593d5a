"""CLI tools for CRM administration."""

import logging

import click
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.db.models import Organization, User
from app.db.session import SessionLocal
from app.schemas.org import OrgCreate
from app.services import org_service, public_form_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


@click.group()
def cli():
    """CRM CLI tools."""
    pass


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--owner-email", required=True, help="Owner email address")
@click.option("--owner-name", default=None, help="Owner display name")
@click.option("--seed-forms/--no-seed-forms", default=True, help="Create the built-in public forms")
def create_org(name: str, slug: str, owner_email: str, owner_name: str | None, seed_forms: bool):
    """
    Create an organization, its owner, and (optionally) the built-in public forms.

    Prints the public key widgets must send in the capability header.

    Example:
        python -m app.cli create-org --name "Acme Fund" --slug "acme" --owner-email "owner@acme.org"
    """
    try:
        payload = OrgCreate(name=name, slug=slug)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    db = SessionLocal()
    try:
        if db.query(Organization).filter(Organization.slug == payload.slug).first():
            raise click.ClickException(f"Organization with slug '{payload.slug}' already exists")

        email = owner_email.strip().lower()
        owner = db.query(User).filter(User.email == email).first()
        if owner is None:
            owner = User(email=email, display_name=(owner_name or email.split("@")[0]).strip())
            db.add(owner)
            db.flush()

        org = org_service.create_org(db, payload.name, payload.slug, owner=owner)
        if seed_forms:
            public_form_service.seed_default_forms(db, org.id)

        click.echo(f"✓ Created organization: {org.name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {org.slug}")
        click.echo(f"  {settings.PUBLIC_KEY_HEADER}: {org.public_key}")
        click.echo(f"✓ Owner: {owner.email}")
    except IntegrityError as exc:
        db.rollback()
        raise click.ClickException(f"Could not create organization: {exc.orig}") from exc
    finally:
        db.close()


@cli.command()
@click.option("--slug", required=True, help="Organization slug")
@click.argument("origin")
def allow_origin(slug: str, origin: str):
    """Add ORIGIN (e.g. https://example.org) to an organization's allowlist."""
    db = SessionLocal()
    try:
        org = org_service.get_org_by_slug(db, slug)
        if org is None:
            raise click.ClickException(f"Organization '{slug}' not found")
        try:
            row, created = org_service.add_allowed_origin(db, org.id, origin)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="ORIGIN") from exc
        click.echo(f"✓ Allowed {row.origin}" if created else f"  {row.origin} already allowed")
    finally:
        db.close()


if __name__ == "__main__":
    cli()

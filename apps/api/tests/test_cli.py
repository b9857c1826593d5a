"""Tests for the admin CLI."""

import pytest
from click.testing import CliRunner

from app import cli as cli_module
from app.db.models import Membership, Organization, PublicForm


@pytest.fixture
def cli_db(db, monkeypatch):
    """Point the CLI at the test session and keep it open across commands."""
    monkeypatch.setattr(db, "close", lambda: None)
    monkeypatch.setattr(cli_module, "SessionLocal", lambda: db)
    return db


def test_create_org_seeds_forms_and_prints_key(cli_db):
    result = CliRunner().invoke(
        cli_module.cli,
        ["create-org", "--name", "Acme Fund", "--slug", "Acme-Fund", "--owner-email", "Owner@Acme.org"],
    )

    assert result.exit_code == 0, result.output
    org = cli_db.query(Organization).filter(Organization.slug == "acme-fund").one()
    assert f"X-Project-Key: {org.public_key}" in result.output
    assert cli_db.query(PublicForm).filter(PublicForm.organization_id == org.id).count() == 4
    membership = cli_db.query(Membership).filter(Membership.organization_id == org.id).one()
    assert membership.role == "owner"


def test_create_org_rejects_duplicate_slug(cli_db, test_org):
    result = CliRunner().invoke(
        cli_module.cli,
        ["create-org", "--name", "Again", "--slug", test_org.slug, "--owner-email", "x@y.org"],
    )

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_create_org_rejects_bad_slug(cli_db):
    result = CliRunner().invoke(
        cli_module.cli,
        ["create-org", "--name", "Bad", "--slug", "no spaces!", "--owner-email", "x@y.org"],
    )

    assert result.exit_code != 0


def test_allow_origin(cli_db, test_org):
    runner = CliRunner()

    first = runner.invoke(cli_module.cli, ["allow-origin", "--slug", test_org.slug, "https://Site.example/"])
    second = runner.invoke(cli_module.cli, ["allow-origin", "--slug", test_org.slug, "https://site.example"])
    bad = runner.invoke(cli_module.cli, ["allow-origin", "--slug", test_org.slug, "not-a-url"])

    assert first.exit_code == 0
    assert "Allowed https://site.example" in first.output
    assert "already allowed" in second.output
    assert bad.exit_code != 0

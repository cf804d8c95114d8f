"""Tests for the tenant-features command line interface."""

import json

import pytest

from tenantfeatures import cli
from tenantfeatures.db.models import Tenant
from tenantfeatures.db.session import get_session


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, session_factory, catalog):
    monkeypatch.setattr(cli, "load_catalog", lambda: catalog)
    monkeypatch.setattr(cli, "get_session_factory", lambda: session_factory)


def test_list_prints_effective_values(capsys, tenant_9):
    assert cli.main(["list", "9"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == ["Chat=true", "MaxUsers=10", "Theme=light"]


def test_set_then_get_as_json(capsys, tenant_7):
    assert cli.main(["set", "7", "Chat", "true"]) == 0
    capsys.readouterr()

    assert cli.main(["--json", "get", "7", "Chat"]) == 0
    assert json.loads(capsys.readouterr().out) == {"Chat": "true"}


def test_reset(capsys, tenant_7):
    cli.main(["set", "7", "Theme", "dark"])
    capsys.readouterr()

    assert cli.main(["--json", "reset", "7"]) == 0
    assert json.loads(capsys.readouterr().out) == {"deleted": 1}


def test_create_tenant(capsys, session_factory, edition_3):
    assert cli.main(["--json", "create-tenant", "acme", "Acme Corp", "--edition-id", "3"]) == 0

    created = json.loads(capsys.readouterr().out)
    assert created["tenancy_name"] == "acme"
    with get_session(session_factory) as session:
        assert session.get(Tenant, created["id"]).edition_id == 3


def test_user_errors_exit_non_zero(capsys):
    assert cli.main(["set", "42", "Chat", "true"]) == 1
    assert "There is no tenant with id: 42" in capsys.readouterr().err


def test_invalid_tenancy_name(capsys):
    assert cli.main(["create-tenant", "1acme", "Acme"]) == 1
    assert "Invalid tenancy name" in capsys.readouterr().err


def test_reads_require_an_existing_tenant(capsys):
    assert cli.main(["get", "42", "Chat"]) == 1
    assert "There is no tenant with id: 42" in capsys.readouterr().err

import importlib

import pytest

from app.models.user import User


@pytest.fixture
def manage():
    return importlib.import_module("cli.manage")


def test_build_parser_and_help(manage):
    parser = manage.build_parser()
    parser.format_help()
    assert manage.main([]) == 2


def test_init_db_creates_tables(manage, capsys):
    assert manage.main(["init-db"]) == 0
    assert "people" in capsys.readouterr().out


def test_create_admin(manage, db):
    assert manage.main(["create-admin", "root@example.com", "--password", "pw", "--name", "Root"]) == 0

    db.expire_all()
    admin = db.query(User).filter(User.email == "root@example.com").first()
    assert admin.role == "ADMIN"
    assert admin.name == "Root"


def test_create_admin_promotes_existing_user(manage, db):
    db.add(User(email="later@example.com", password_hash="x"))
    db.commit()

    assert manage.main(["create-admin", "later@example.com"]) == 0

    db.expire_all()
    assert db.query(User).filter(User.email == "later@example.com").first().role == "ADMIN"


def test_migrate_calls_alembic(manage, monkeypatch):
    calls = []
    monkeypatch.setattr(manage.subprocess, "call", lambda cmd, cwd: calls.append(cmd) or 0)

    assert manage.main(["migrate"]) == 0
    assert calls[0][-3:] == ["alembic", "upgrade", "head"]

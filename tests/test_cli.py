import re

from feedbackhub.extensions import db
from feedbackhub.models import Application
from feedbackhub.services.credentials import authenticate

_KEY_LINE = re.compile(r"API key \(shown once, store it now\): (\S+)")


def _key_from(output: str) -> str:
    m = _KEY_LINE.search(output)
    assert m, output
    return m.group(1)


def test_cli_create_and_list(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["applications", "create", "--name", "CLI App", "--slug", "cli-app"])
    assert result.exit_code == 0, result.output
    key = _key_from(result.output)

    with app.app_context():
        row = db.session.query(Application).filter_by(slug="cli-app").one()
        assert authenticate(key).id == row.id

    listed = runner.invoke(args=["applications", "list"])
    assert listed.exit_code == 0
    assert "cli-app" in listed.output
    assert key not in listed.output


def test_cli_rejects_duplicate_slug(app):
    runner = app.test_cli_runner()
    runner.invoke(args=["applications", "create", "--name", "One", "--slug", "twice"])
    result = runner.invoke(args=["applications", "create", "--name", "Two", "--slug", "twice"])
    assert result.exit_code != 0
    assert "Slug already in use" in result.output


def test_cli_rotate_and_toggle(app):
    runner = app.test_cli_runner()
    created = runner.invoke(args=["applications", "create", "--name", "Rot", "--slug", "rot-cli"])
    old_key = _key_from(created.output)

    rotated = runner.invoke(args=["applications", "rotate-key", "--slug", "rot-cli", "--yes"])
    assert rotated.exit_code == 0, rotated.output
    new_key = _key_from(rotated.output)
    assert new_key != old_key

    off = runner.invoke(args=["applications", "deactivate", "--slug", "rot-cli"])
    assert off.exit_code == 0
    with app.app_context():
        assert db.session.query(Application).filter_by(slug="rot-cli").one().is_active is False

    on = runner.invoke(args=["applications", "activate", "--slug", "rot-cli"])
    assert on.exit_code == 0
    with app.app_context():
        assert authenticate(new_key).slug == "rot-cli"


def test_cli_unknown_slug(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["applications", "deactivate", "--slug", "ghost"])
    assert result.exit_code != 0
    assert "Application not found" in result.output

import pytest
from typer.testing import CliRunner

from pokem import __version__
from pokem.cli.commands import app, select_room

runner = CliRunner()

ROOMS = {"default": "!default:example.org", "ops": "!ops:example.org"}


def test_room_option_is_nickname_mapped():
    assert select_room("ops", ["hi"], ROOMS) == ("!ops:example.org", ["hi"])
    assert select_room("#x:example.org", ["hi"], ROOMS) == ("#x:example.org", ["hi"])


def test_first_word_room_like():
    assert select_room(None, ["#ci:example.org", "build", "failed"], ROOMS) == (
        "#ci:example.org",
        ["build", "failed"],
    )


def test_first_word_nickname():
    assert select_room(None, ["ops", "disk", "full"], ROOMS) == ("!ops:example.org", ["disk", "full"])


def test_default_room():
    assert select_room(None, ["hello"], ROOMS) == ("!default:example.org", ["hello"])
    assert select_room(None, [], ROOMS) == ("!default:example.org", [])


def test_no_room():
    with pytest.raises(ValueError):
        select_room(None, ["hello"], {})


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_send_without_room_fails(tmp_path):
    result = runner.invoke(app, ["send", "--config", str(tmp_path / "none.json"), "hello"])
    assert result.exit_code == 1

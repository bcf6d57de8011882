from pathlib import Path

from main import _list_users, _parse_args
from userauth.database import Database


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"
    assert args.config is None


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_config_option_is_accepted_by_subcommands() -> None:
    args = _parse_args(["list-users", "--config", "settings.yaml"])
    assert args.command == "list-users"
    assert args.config == Path("settings.yaml")

    serve = _parse_args(["--config", "settings.yaml"])
    assert serve.command == "serve"
    assert serve.config == Path("settings.yaml")


def test_init_db_subcommand_available() -> None:
    args = _parse_args(["init-db"])
    assert args.command == "init-db"


def test_list_users_prints_registered_accounts(tmp_path, capsys) -> None:
    database = Database(tmp_path / "cli.sqlite3")
    database.initialize()

    _list_users(database)
    assert "No users are currently registered." in capsys.readouterr().out

    database.create_user("Ada", "ada@x.com", "$2b$04$hashed")
    _list_users(database)
    output = capsys.readouterr().out
    assert "1 user(s) found:" in output
    assert "ada@x.com" in output

import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userauth.config import load_settings
from userauth.database import Database, PersistenceError
from userauth.security import HashingError, PasswordHasher


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user account without the web form")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Email address used to log in")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML settings file (defaults to USERAUTH_CONFIG)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    settings = load_settings(args.config)
    database = Database(settings.database_path)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    try:
        database.initialize()
        user = database.create_user(args.name.strip(), args.email.strip(), hasher.hash(password))
    except (HashingError, PersistenceError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

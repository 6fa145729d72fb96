import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.application import build_state
from portal.config import load_settings
from portal.errors import PortalError

MIN_PASSWORD_LENGTH = 8


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a student portal account")
    parser.add_argument("name", help="Full name of the student")
    parser.add_argument("email", help="Unique email address for login")
    parser.add_argument("--phone", default=None, help="Optional phone number")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (defaults to PORTAL_CONFIG)",
    )
    return parser.parse_args(argv)


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < MIN_PASSWORD_LENGTH:
            print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main(argv=None) -> int:
    args = parse_args(argv)
    password = prompt_for_password()

    config_path = Path(args.config).expanduser().resolve(strict=False) if args.config else None
    state = build_state(load_settings(config_path))

    try:
        user = state.identity.register(args.name, args.email, password, args.phone)
    except PortalError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.full_name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

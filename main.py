#!/usr/bin/env python3
"""
session-auth -- Username/password accounts and rotating session keys.

Usage:
  python main.py createUsersTable
  python main.py createSessionsTable
  python main.py createUser alice "correct horse"
  python main.py signIn alice "correct horse"
  python main.py createSession <user-id>
  python main.py authenticateSession <session-key>
  python main.py signOut <session-id>
  python main.py users
  python main.py tables
  python main.py --database-url sqlite:///other.db users

Environment variables (or .env):
  DATABASE_URL  SQLAlchemy URL of the store (default sqlite:///session_auth.db).
  DEBUG         true enables DEBUG logging, including step timings.
  LOG_LEVEL     Logging level when DEBUG is off (default INFO).
  LOG_SECRETS   true logs plaintext passwords and raw keys. Debugging only.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from typing import Callable, Optional

from auth.crypto import fresh_id, hashed_password, now, random_token
from auth.service import AuthService
from core.config import get_settings
from core.errors import AuthError
from db.database import Database

logger = logging.getLogger("sessionauth.cli")


def _print_json(value) -> None:
    print(json.dumps(value, indent=2))


def _print_account(account) -> None:
    _print_json(account.public_dict() if account is not None else None)


# ---------------------------------------------------------------------------
# Command handlers -- each takes (service, db, args) and prints its result
# ---------------------------------------------------------------------------


def _cmd_tables(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    for name in db.tables():
        print(name)


def _cmd_drop(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    if db.drop(args.table):
        print(f"Dropped {args.table}")
    else:
        print(f"  [!] No table named {args.table!r}.")


def _cmd_random_hex(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    print(random_token(args.n))


def _cmd_hashed_password(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    print(hashed_password(args.password))


def _cmd_uuid(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    print(fresh_id())


def _cmd_now(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    print(now())


def _cmd_create_users_table(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    service.create_users_table()


def _cmd_create_user(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_account(service.create_user(args.username, args.password))


def _cmd_users(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_json([a.public_dict() for a in service.users()])


def _cmd_username_exists(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_json(service.username_exists(args.username))


def _cmd_get_user_by_id(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_account(service.get_user_by_id(args.id))


def _cmd_get_user_by_username(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_account(service.get_user_by_username(args.username))


def _cmd_sign_in(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    authenticated = service.sign_in(args.username, args.password)
    print(f"authenticated: {'yes' if authenticated else 'no'}")


def _cmd_create_sessions_table(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    service.create_sessions_table()


def _cmd_create_session(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_json(asdict(service.create_session(args.user_id)))


def _cmd_sessions(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_json([asdict(s) for s in service.sessions()])


def _cmd_authenticate_session(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    account, new_key = service.session_store.authenticate_and_rotate(args.session_key)
    _print_json(
        {
            "account": account.public_dict() if account is not None else None,
            "session_key": new_key,
        }
    )


def _cmd_refresh_session(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    _print_json({"session_key": service.refresh_session(args.id)})


def _cmd_delete_session(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    service.delete_session(args.id)


def _cmd_sign_out(service: AuthService, db: Database, args: argparse.Namespace) -> None:
    service.sign_out(args.id)


Handler = Callable[[AuthService, Database, argparse.Namespace], None]

# name -> (handler, help, positional args)
_COMMANDS: dict[str, tuple[Handler, str, tuple[str, ...]]] = {
    "tables": (_cmd_tables, "List the tables in the database", ()),
    "drop": (_cmd_drop, "Drop a table by name", ("table",)),
    "randomHex": (_cmd_random_hex, "Print N random bytes as hex", ("n",)),
    "hashedPassword": (_cmd_hashed_password, "Print the stored form of a password", ("password",)),
    "uuid:v4": (_cmd_uuid, "Print a fresh UUID4", ()),
    "now": (_cmd_now, "Print the current UTC timestamp", ()),
    "createUsersTable": (_cmd_create_users_table, "Create the users table", ()),
    "createUser": (_cmd_create_user, "Create an account", ("username", "password")),
    "users": (_cmd_users, "List accounts", ()),
    "usernameExists": (_cmd_username_exists, "Check whether a username is taken", ("username",)),
    "getUserById": (_cmd_get_user_by_id, "Look up an account by id", ("id",)),
    "getUserByUsername": (_cmd_get_user_by_username, "Look up an account by username", ("username",)),
    "signIn": (_cmd_sign_in, "Check a username/password pair", ("username", "password")),
    "createSessionsTable": (_cmd_create_sessions_table, "Create the sessions table", ()),
    "createSession": (_cmd_create_session, "Issue a session for an account id", ("user_id",)),
    "sessions": (_cmd_sessions, "List sessions, raw keys included", ()),
    "authenticateSession": (
        _cmd_authenticate_session,
        "Resolve a session key to its account and rotate it",
        ("session_key",),
    ),
    "refreshSession": (_cmd_refresh_session, "Rotate a session key by session id", ("id",)),
    "deleteSession": (_cmd_delete_session, "Delete a session by id", ("id",)),
    "signOut": (_cmd_sign_out, "Revoke a session by id", ("id",)),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="session-auth",
        description="Username/password accounts and rotating session keys.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (overrides DATABASE_URL)",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    for name, (handler, help_text, positionals) in _COMMANDS.items():
        sub = subparsers.add_parser(name, help=help_text)
        for positional in positionals:
            if positional == "n":
                sub.add_argument(positional, type=int, help="Number of random bytes")
            else:
                sub.add_argument(positional)
        sub.set_defaults(handler=handler)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    settings = get_settings()
    logging.basicConfig(
        level=settings.effective_log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    db_url = args.database_url or settings.database_url
    db: Optional[Database] = None
    try:
        db = Database(db_url, echo=settings.sql_echo)
        service = AuthService.from_database(db)
        args.handler(service, db, args)
    except AuthError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"  [!] {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 1
    finally:
        if db is not None:
            db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Summary: Command-line interface for the preferences exchange.

Importance: Provides administration of users, keys, and stored preferences.
Alternatives: Manage the database with the sqlite3 shell.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from prefexchange.app import build_context
from prefexchange.auth import add_credential
from prefexchange.codec import decode_bytes
from prefexchange.config import AppConfig
from prefexchange.errors import ValueFormatError
from prefexchange.models import PreferenceLine, normalize_user_id
from prefexchange.params import render_param_tags
from prefexchange.values import Color


def describe_value(line: PreferenceLine) -> str:
    """Summary: Render a preference line's typed value for display.

    Importance: Shows administrators what the client will read, not just the raw text.
    Alternatives: Print the raw value only.
    """

    try:
        value = line.typed_value()
    except ValueFormatError:
        return f"{line.value} (unreadable)"
    if isinstance(value, Color):
        return f"#{value.rgb:06x}"
    if isinstance(value, str):
        return value
    return repr(value)


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="Preferences exchange CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the preferences table")

    add_user = subparsers.add_parser("add-user", help="Add or replace a user's credentials")
    add_user.add_argument("username", type=str)
    add_user.add_argument("password", type=str)

    issue_key = subparsers.add_parser("issue-key", help="Issue a one-time save key")
    issue_key.add_argument("user", type=str)

    show_prefs = subparsers.add_parser("show-prefs", help="Show a user's preferences")
    show_prefs.add_argument("user", type=str)

    export_prefs = subparsers.add_parser("export-prefs", help="Print a user's raw blob")
    export_prefs.add_argument("user", type=str)

    import_prefs = subparsers.add_parser("import-prefs", help="Store a blob file for a user")
    import_prefs.add_argument("user", type=str)
    import_prefs.add_argument("path", type=str)

    delete_user = subparsers.add_parser("delete-user", help="Remove a user's stored preferences and key")
    delete_user.add_argument("user", type=str)

    render_params = subparsers.add_parser("render-params", help="Render startup PARAM tags")
    render_params.add_argument("--user", type=str, default=None)

    return parser


def run_cli(argv: list[str] | None = None) -> None:
    """Summary: Execute CLI commands based on arguments.

    Importance: Drives administration without the HTTP API.
    Alternatives: Expose admin endpoints over HTTP.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)
    config = AppConfig.from_env()

    if args.command == "add-user":
        user_id = add_credential(
            Path(config.credentials_path), args.username, args.password, config.password_salt
        )
        print(f"Stored credentials for {user_id}.")
        return

    context = build_context(config)

    if args.command == "init-db":
        print(f"Preference store ready with {context.store.count_users()} users.")
        return

    if args.command == "issue-key":
        user_id = normalize_user_id(args.user)
        context.store.get_or_create(user_id)
        print(context.issuer.issue(user_id))
        return

    if args.command == "show-prefs":
        prefs = context.handler.stored_preferences(normalize_user_id(args.user))
        if prefs.is_empty:
            print("No preferences saved.")
            return
        for group in prefs.groups:
            print(f"[{group.type_name}]")
            for line in group.lines:
                print(f"  {line.name} ({line.type_tag}) = {describe_value(line)}")
        return

    if args.command == "export-prefs":
        blob = context.store.load_blob(normalize_user_id(args.user))
        if blob is None:
            print("No preferences saved.")
            return
        print(blob.decode("utf-8", errors="replace"), end="")
        return

    if args.command == "import-prefs":
        prefs = decode_bytes(Path(args.path).read_bytes())
        user_id = normalize_user_id(args.user)
        context.handler.replace_preferences(user_id, prefs)
        print(f"Imported {len(prefs.groups)} preference groups for {user_id}.")
        return

    if args.command == "delete-user":
        user_id = normalize_user_id(args.user)
        if context.store.delete_user(user_id):
            print(f"Deleted preferences for {user_id}.")
        else:
            print(f"No record for {user_id}.")
        return

    if args.command == "render-params":
        user_id = normalize_user_id(args.user) if args.user else None
        print(render_param_tags(context.handler.startup_parameters(user_id)), end="")
        return


if __name__ == "__main__":
    run_cli()

"""Summary: Application wiring for the preferences exchange.

Importance: Provides a single construction path for the API and CLI.
Alternatives: Instantiate the store and handler separately in each entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from prefexchange.auth import Authenticator, CredentialFileAuthenticator
from prefexchange.config import AppConfig
from prefexchange.exchange import ExchangeHandler
from prefexchange.key_issuer import KeyIssuer
from prefexchange.params import load_startup_parameters
from prefexchange.storage.sqlite_store import SqliteStore


@dataclass(frozen=True)
class AppContext:
    """Summary: Shared dependencies for request handling.

    Importance: Reuses the store and authenticator across requests.
    Alternatives: Rebuild dependencies for every request.
    """

    store: SqliteStore
    issuer: KeyIssuer
    authenticator: Authenticator
    handler: ExchangeHandler
    config: AppConfig


def build_context(config: AppConfig, authenticator: Authenticator | None = None) -> AppContext:
    """Summary: Build the shared context from configuration.

    Importance: Initializes storage once and wires the handler to it.
    Alternatives: Construct dependencies separately per request.
    """

    store = SqliteStore(config.db_path)
    store.initialize()
    issuer = KeyIssuer.for_style(store, config.save_key_style, config.save_key_attempts)
    if authenticator is None:
        authenticator = CredentialFileAuthenticator(Path(config.credentials_path), config.password_salt)
    handler = ExchangeHandler(
        store=store,
        issuer=issuer,
        authenticator=authenticator,
        config=config,
        base_parameters=tuple(load_startup_parameters(Path(config.startup_parameters_path))),
    )
    return AppContext(
        store=store,
        issuer=issuer,
        authenticator=authenticator,
        handler=handler,
        config=config,
    )

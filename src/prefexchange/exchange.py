"""Summary: Request handling for the preferences exchange protocol.

Importance: Orchestrates loads and saves against the key issuer, store, and codec.
Alternatives: Implement each protocol variant as a separate service.

Two wire variants are served by the same handler. The token variant hands
the client a one-time save key on page render and accepts
`token\\nblob\\nDone` uploads. The credentials variant expects
`username\\npassword\\npayload` on every load and save.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from prefexchange.auth import Authenticator
from prefexchange.codec import decode_bytes, encode
from prefexchange.config import AppConfig
from prefexchange.errors import (
    AuthenticationFailure,
    DecodeError,
    ExchangeError,
    IncompleteUpload,
    InvalidToken,
    KeyIssueError,
    MissingCredential,
    StoreError,
    UploadInterrupted,
)
from prefexchange.key_issuer import KeyIssuer
from prefexchange.models import PreferenceSet, StartupParameter
from prefexchange.params import preference_parameters
from prefexchange.storage.sqlite_store import SqliteStore


logger = logging.getLogger(__name__)

NO_PREFS = b"NOPREFS\n"
OK = b"OK"

_TOKEN_UPLOAD_STATUS: dict[type[ExchangeError], int] = {
    IncompleteUpload: 400,
    DecodeError: 400,
    InvalidToken: 403,
    StoreError: 500,
    KeyIssueError: 500,
}


@dataclass(frozen=True)
class ExchangeReply:
    """Summary: Status code and raw body produced for one exchange request.

    Importance: Keeps the wire body byte-exact while letting HTTP pick a status.
    Alternatives: Return framework response objects from the handler.
    """

    status_code: int
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ExchangeHandler:
    """Summary: Serves both protocol variants over one store and key issuer.

    Importance: One codebase handles token and credential deployments by configuration.
    Alternatives: Fork the service per deployment.
    """

    store: SqliteStore
    issuer: KeyIssuer
    authenticator: Authenticator
    config: AppConfig
    base_parameters: tuple[StartupParameter, ...] = field(default_factory=tuple)

    @property
    def variant(self) -> str:
        return self.config.protocol_variant

    def startup_parameters(self, user_id: str | None) -> list[StartupParameter]:
        """Summary: Build the client's startup parameters for a page render.

        Importance: Issues a fresh save key and inlines stored preferences for signed-in users.
        Alternatives: Have the client request its preferences after startup.

        Passing None renders for a guest, who never receives a save key.
        """

        params = list(self.base_parameters)
        if self.variant == "credentials":
            params.append(StartupParameter("loadPrefsURL", self.config.load_prefs_url))
            params.append(StartupParameter("savePrefsURL", self.config.save_prefs_url))
            return params
        params.append(StartupParameter("isGuest", "true" if user_id is None else "false"))
        if user_id is None:
            return params
        record = self.store.get_or_create(user_id)
        save_key = self.issuer.issue(user_id)
        params.append(StartupParameter("savePrefsUrl", self.config.save_prefs_url))
        params.append(StartupParameter("prefsSaveKey", save_key))
        params.extend(preference_parameters(self._readable_preferences(user_id, record.prefs_blob)))
        return params

    def _readable_preferences(self, user_id: str, blob: bytes | None) -> PreferenceSet:
        # An unreadable blob still renders with a key so the client can overwrite it.
        if not blob:
            return PreferenceSet.empty()
        try:
            return decode_bytes(blob)
        except DecodeError as exc:
            logger.warning("Stored preferences for %s are unreadable: %s", user_id, exc.message)
            return PreferenceSet.empty()

    def token_upload(self, raw: bytes) -> ExchangeReply:
        """Summary: Save an upload framed as `token\\nblob\\nsentinel`.

        Importance: Accepts a save only against a currently active, single-use key.
        Alternatives: Accept saves authenticated by a session cookie.

        The blob is validated before the key is consumed, so a malformed upload
        leaves the key usable and the stored blob unchanged.
        """

        try:
            token, blob = self.split_token_upload(raw)
            decode_bytes(blob)
            if self.issuer.redeem(token, blob) is None:
                raise InvalidToken(token)
        except tuple(_TOKEN_UPLOAD_STATUS) as exc:
            logger.warning("Rejected preferences upload: %s", exc.message.strip())
            return ExchangeReply(_status_for(exc), exc.response_text.encode("utf-8"))
        return ExchangeReply(200, b"")

    def split_token_upload(self, raw: bytes) -> tuple[str, bytes]:
        """Summary: Separate the key line and blob lines from the closing sentinel."""

        lines = raw.split(b"\n")
        if len(lines) < 2 or lines[-1] != self.config.upload_sentinel.encode("utf-8"):
            raise IncompleteUpload()
        token = lines[0].decode("utf-8", errors="replace")
        return token, b"\n".join(lines[1:-1])

    def credential_save(self, raw: bytes) -> ExchangeReply:
        """Summary: Authenticate and store a `username\\npassword\\npayload` upload.

        Importance: Supports clients that send credentials with every exchange.
        Alternatives: Require the token variant everywhere.
        """

        try:
            user_id, payload = self._authenticate(raw)
            sentinel = self.config.credential_sentinel.encode("utf-8")
            if not payload.endswith(sentinel):
                raise UploadInterrupted()
            blob = payload[: -len(sentinel)]
            self.store.save_blob(user_id, blob)
        except ExchangeError as exc:
            logger.warning("Rejected preferences save: %s", exc.message.strip())
            return ExchangeReply(200, exc.response_text.encode("utf-8"))
        logger.info("Saved %s bytes of preferences for %s.", len(blob), user_id)
        return ExchangeReply(200, OK)

    def credential_load(self, raw: bytes) -> ExchangeReply:
        """Summary: Authenticate and return the stored payload.

        Importance: A user without saved preferences gets NOPREFS, not an error.
        Alternatives: Return an empty payload for new users.
        """

        try:
            user_id, _ = self._authenticate(raw)
            blob = self.store.load_blob(user_id)
        except ExchangeError as exc:
            logger.warning("Rejected preferences load: %s", exc.message.strip())
            return ExchangeReply(200, exc.response_text.encode("utf-8"))
        if blob is None:
            return ExchangeReply(200, NO_PREFS)
        return ExchangeReply(200, OK + b"\n" + blob)

    def stored_preferences(self, user_id: str) -> PreferenceSet:
        """Summary: Decode a user's stored blob, empty when nothing is saved."""

        blob = self.store.load_blob(user_id)
        if not blob:
            return PreferenceSet.empty()
        return decode_bytes(blob)

    def replace_preferences(self, user_id: str, prefs: PreferenceSet) -> bytes:
        """Summary: Encode and store a preference set for a user.

        Importance: Gives administrative tools a validated write path.
        Alternatives: Write raw blobs directly to the store.
        """

        blob = encode(prefs).encode("utf-8")
        self.store.save_blob(user_id, blob)
        logger.info("Replaced preferences for %s.", user_id)
        return blob

    def _authenticate(self, raw: bytes) -> tuple[str, bytes]:
        username, sep, rest = raw.partition(b"\n")
        if not username:
            raise MissingCredential("username")
        password, _, payload = rest.partition(b"\n")
        if not sep or not password:
            raise MissingCredential("password")
        user_id = self.authenticator.verify(
            username.decode("utf-8", errors="replace"),
            password.decode("utf-8", errors="replace"),
        )
        if user_id is None:
            raise AuthenticationFailure()
        return user_id, payload


def _status_for(error: ExchangeError) -> int:
    for error_type, status in _TOKEN_UPLOAD_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500

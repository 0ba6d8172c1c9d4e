"""
Connection to the platform API.

Establishing a session (login, token acquisition) happens elsewhere, the core only
reads the connection once per call and never mutates it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from aiohttp import BasicAuth

from .. import config


@runtime_checkable
class Connection(Protocol):
    def is_valid(self) -> bool: ...

    def base_url(self) -> str: ...

    def auth_scheme(self) -> str: ...

    def credential(self) -> str: ...

    def skip_cert_verification(self) -> bool: ...


@dataclass(frozen=True)
class StaticConnection:
    """A connection whose credential is known upfront, ie an API token."""

    url: str
    token: str = field(repr=False)
    scheme: str = "Basic"
    skip_verify: bool = False
    expires_at: datetime | None = None

    @classmethod
    def from_config(cls) -> "StaticConnection":
        return cls(
            url=config.VERGE_URL,
            token=config.VERGE_CREDENTIAL,
            scheme=config.AUTH_SCHEME,
            skip_verify=config.SKIP_CERT_VERIFICATION,
        )

    @classmethod
    def basic(
        cls, url: str, username: str, password: str, skip_verify: bool = False
    ) -> "StaticConnection":
        # BasicAuth.encode() gives "Basic <base64>", only the credential is kept
        _, token = BasicAuth(username, password).encode().split(" ", 1)
        return cls(url=url, token=token, scheme="Basic", skip_verify=skip_verify)

    def is_valid(self) -> bool:
        if not self.url or not self.token:
            return False
        if self.expires_at is not None:
            expires_at = self.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            return datetime.now(timezone.utc) < expires_at
        return True

    def base_url(self) -> str:
        return self.url

    def auth_scheme(self) -> str:
        return self.scheme or "Basic"

    def credential(self) -> str:
        return self.token

    def skip_cert_verification(self) -> bool:
        return self.skip_verify


def auth_header_value(connection: Connection) -> str:
    return f"{connection.auth_scheme() or 'Basic'} {connection.credential()}"

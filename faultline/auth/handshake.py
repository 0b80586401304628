from __future__ import annotations

import logging
from typing import Protocol

from faultline.http.transport import FailureTransport


class AuthenticationHandler(Protocol):
    """Triggers scheme handshakes; ``scheme=None`` means the default scheme."""

    async def challenge(self, transport: FailureTransport, scheme: str | None = None) -> None: ...

    async def forbid(self, transport: FailureTransport, scheme: str | None = None) -> None: ...


class HeaderAuthenticationHandler:
    def __init__(self, *, default_scheme: str | None = None, realm: str | None = None) -> None:
        self._default_scheme = default_scheme
        self._realm = realm

    async def challenge(self, transport: FailureTransport, scheme: str | None = None) -> None:
        transport.set_status(401)
        effective = scheme or self._default_scheme
        if not effective:
            logging.getLogger("faultline.auth").debug("challenge_without_scheme")
            return
        value = effective if not self._realm else f'{effective} realm="{self._realm}"'
        transport.append_header("WWW-Authenticate", value)

    async def forbid(self, transport: FailureTransport, scheme: str | None = None) -> None:
        transport.set_status(403)

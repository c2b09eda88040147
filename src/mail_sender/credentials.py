# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SMTP credential providers.

A provider returns a :class:`Credential` or ``None``; ``None`` means the
message is sent without authentication. Passwords are held as
:class:`pydantic.SecretStr` and only revealed when the transport logs in.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol

from pydantic import SecretStr


@dataclass(frozen=True)
class Credential:
    username: str
    password: SecretStr

    def __repr__(self) -> str:
        return f"Credential(username={self.username!r}, password=SecretStr('**********'))"


class CredentialProvider(Protocol):
    def get_credential(self) -> Credential | None: ...


class StaticCredentialProvider:
    """Credential fixed at construction time (settings file or CLI options)."""

    def __init__(self, username: str | None, password: str | SecretStr | None):
        self._credential = None
        if username:
            if not isinstance(password, SecretStr):
                password = SecretStr(password or "")
            self._credential = Credential(username=username, password=password)

    def get_credential(self) -> Credential | None:
        return self._credential


class EnvCredentialProvider:
    """Read the credential from environment variables at call time.

    Environment variables:
      MAILSENDER_USERNAME - SMTP username (no authentication when unset)
      MAILSENDER_PASSWORD - SMTP password
    """

    def __init__(self, username_var: str = "MAILSENDER_USERNAME", password_var: str = "MAILSENDER_PASSWORD"):
        self.username_var = username_var
        self.password_var = password_var

    def get_credential(self) -> Credential | None:
        username = os.getenv(self.username_var)
        if not username:
            return None
        return Credential(username=username, password=SecretStr(os.getenv(self.password_var, "")))

# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class OAuthError(Exception):
    """The provider refused the exchange or answered with something unusable."""


class ProviderConfig(BaseModel):
    client_id: str
    client_secret: str
    scopes: List[str] = []
    redirect_uri: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None


class UserInfo(BaseModel):
    id: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    raw_data: Dict[str, Any] = {}


class BaseProvider(ABC):
    """OAuth authorization-code provider.

    Implementations raise ``OAuthError`` for any refusal or malformed
    payload; transport failures surface as ``httpx.HTTPError``.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.provider_name = self.__class__.__name__.lower().replace("provider", "")

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        ...

    @abstractmethod
    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        ...

    @abstractmethod
    async def get_user_info(self, access_token: str) -> UserInfo:
        ...

    def get_scopes_string(self) -> str:
        return " ".join(self.config.scopes)

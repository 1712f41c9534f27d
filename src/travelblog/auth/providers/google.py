# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import structlog
from pydantic import ValidationError

from travelblog.auth.providers.base import BaseProvider, OAuthError, ProviderConfig, TokenResponse, UserInfo

logger = structlog.get_logger()


class GoogleConfig(ProviderConfig):
    scopes: List[str] = ["openid", "email", "profile"]


def _json_object(response: httpx.Response) -> Dict[str, Any]:
    """Response body as a JSON object, or an empty dict if it is anything else."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class GoogleProvider(BaseProvider):
    """Google OAuth 2.0 authorization code flow."""

    def __init__(self, config: GoogleConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(config)
        self.authorization_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
        self.token_endpoint = "https://oauth2.googleapis.com/token"
        self.user_info_endpoint = "https://www.googleapis.com/oauth2/v3/userinfo"
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=30.0)

    def get_authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "scope": self.get_scopes_string(),
            "state": state,
            "response_type": "code",
            "access_type": "online",
            "prompt": "select_account",
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str) -> TokenResponse:
        if not code:
            raise OAuthError("Missing authorization code")

        data = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.config.redirect_uri,
        }

        logger.info("Exchanging code for token", provider=self.provider_name)

        async with self._client() as client:
            response = await client.post(
                self.token_endpoint,
                data=data,
                headers={"Accept": "application/json"},
            )
        token_data = _json_object(response)

        if response.status_code >= 400 or "error" in token_data or not token_data.get("access_token"):
            logger.error(
                "Google OAuth error",
                status=response.status_code,
                error=token_data.get("error"),
                description=token_data.get("error_description"),
            )
            detail = token_data.get("error_description") or token_data.get("error") or f"HTTP {response.status_code}"
            raise OAuthError(f"Google OAuth error: {detail}")

        try:
            return TokenResponse(
                access_token=token_data["access_token"],
                refresh_token=token_data.get("refresh_token"),
                id_token=token_data.get("id_token"),
                expires_in=token_data.get("expires_in"),
                token_type=token_data.get("token_type") or "Bearer",
                scope=token_data.get("scope"),
            )
        except ValidationError as e:
            logger.error("Malformed Google token response", error_count=e.error_count())
            raise OAuthError("Google OAuth error: malformed token response") from e

    async def get_user_info(self, access_token: str) -> UserInfo:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        async with self._client() as client:
            response = await client.get(self.user_info_endpoint, headers=headers)
        response.raise_for_status()
        user_data = _json_object(response)

        if not user_data.get("sub"):
            logger.error("Malformed Google userinfo response", status=response.status_code)
            raise OAuthError("Google OAuth error: userinfo without subject")

        verified = user_data.get("email_verified", False)
        if isinstance(verified, str):
            verified = verified.lower() == "true"

        try:
            return UserInfo(
                id=str(user_data["sub"]),
                email=user_data.get("email"),
                email_verified=bool(verified),
                name=user_data.get("name"),
                avatar_url=user_data.get("picture"),
                raw_data=user_data,
            )
        except ValidationError as e:
            logger.error("Malformed Google userinfo response", error_count=e.error_count())
            raise OAuthError("Google OAuth error: malformed userinfo") from e

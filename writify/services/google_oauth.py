"""Google OAuth provider used by the login callback."""
from typing import Optional, Dict, Any
from urllib.parse import urlencode
import logging

import httpx

from writify.core.config import settings

logger = logging.getLogger(__name__)


class GoogleOAuthProvider:
    """Authorization-code flow against Google's endpoints."""

    GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
    GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    def __init__(self):
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = settings.GOOGLE_REDIRECT_URI

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_authorization_url(self, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
        }
        if state:
            params["state"] = state
        return f"{self.GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_tokens(self, code: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                self.GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.redirect_uri,
                },
            )
            response.raise_for_status()
            return response.json()

    async def get_user_info(self, access_token: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(
                self.GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            return response.json()

    async def authenticate(self, code: str) -> Optional[Dict[str, Any]]:
        """
        Complete the OAuth flow: exchange the code and read the profile.

        Returns:
            Identity dict (google_id, email, name, picture) or None on failure
        """
        try:
            tokens = await self.exchange_code_for_tokens(code)
            access_token = tokens.get("access_token")
            if not access_token:
                logger.error("No access token received from Google token exchange")
                return None

            user_info = await self.get_user_info(access_token)
        except httpx.HTTPStatusError as e:
            logger.error("Google OAuth HTTP error: %s - %s", e.response.status_code, e.response.text)
            return None
        except httpx.RequestError as e:
            logger.error("Google OAuth request error: %s", e)
            return None

        return {
            "google_id": user_info.get("sub"),
            "email": user_info.get("email"),
            "name": user_info.get("name") or user_info.get("email"),
            "picture": user_info.get("picture"),
        }


# Shared instance
google_oauth = GoogleOAuthProvider()

from pydantic import BaseModel, EmailStr
from typing import Optional

import httpx

from ..core.config import settings
from ..core.security import AuthenticationError


class GoogleIdentity(BaseModel):
    sub: str
    email: EmailStr
    name: Optional[str] = None


class GoogleVerifier:
    """Validates Google ID tokens against the tokeninfo endpoint."""

    def __init__(self, client_id: Optional[str], tokeninfo_url: str):
        self.client_id = client_id
        self.tokeninfo_url = tokeninfo_url

    async def verify(self, id_token: str) -> GoogleIdentity:
        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.get(self.tokeninfo_url, params={"id_token": id_token})
            except httpx.HTTPError:
                raise AuthenticationError("Could not reach Google to verify token")

        if response.status_code != 200:
            raise AuthenticationError("Invalid Google token")

        info = response.json()
        if self.client_id and info.get("aud") != self.client_id:
            raise AuthenticationError("Google token was issued for another client")
        if not info.get("email"):
            raise AuthenticationError("Google token carries no email")

        return GoogleIdentity(
            sub=info.get("sub", ""),
            email=info["email"],
            name=info.get("name") or info["email"].split("@")[0],
        )


google_verifier = GoogleVerifier(settings.GOOGLE_CLIENT_ID, settings.GOOGLE_TOKENINFO_URL)


def get_google_verifier() -> GoogleVerifier:
    """Google verifier dependency."""
    return google_verifier

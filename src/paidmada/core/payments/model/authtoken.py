import time
from dataclasses import dataclass
from typing import Optional

# Tokens are treated as expired this many seconds before their real expiry
TOKEN_EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class AuthToken:
    access_token: str
    token_type: str
    expires_in: int
    expires_at: float
    scope: Optional[str] = None

    @classmethod
    def from_response(cls, data: dict, default_type: str = "Bearer") -> "AuthToken":
        """Build a token from an OAuth2 client-credentials response body."""
        expires_in = int(data.get("expires_in") or 0)
        return cls(
            access_token=data["access_token"],
            token_type=data.get("token_type") or default_type,
            expires_in=expires_in,
            expires_at=time.time() + expires_in,
            scope=data.get("scope"),
        )

    def is_valid(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now < self.expires_at - TOKEN_EXPIRY_MARGIN_SECONDS

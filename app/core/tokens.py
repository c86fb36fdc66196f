"""
Single-use, time-boxed tokens for email verification, password reset and invitations.

The raw token handed to the user is "<selector>.<verifier>". Only the bcrypt hash of the
verifier is stored; the selector is a non-secret lookup key. A token is consumed by deleting
its row, and only the request whose delete returns the row wins.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging
import secrets

from fastapi import HTTPException, status
from supabase import Client

from app.core.security import get_password_hash, verify_password, mask_email

logger = logging.getLogger(__name__)

TOKENS_TABLE = "auth_tokens"

PURPOSE_VERIFICATION = "verification"
PURPOSE_PASSWORD_RESET = "password_reset"
PURPOSE_INVITATION = "invitation"
PURPOSES = (PURPOSE_VERIFICATION, PURPOSE_PASSWORD_RESET, PURPOSE_INVITATION)

INVALID_TOKEN_DETAIL = "Invalid or expired token"


class InvalidTokenError(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN_DETAIL)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_live(row: Dict[str, Any]) -> bool:
    expires_at = _parse_ts(row.get("expires_at"))
    return expires_at is not None and expires_at > _now()


class TokenService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def issue(
        self,
        purpose: str,
        email: str,
        ttl: timedelta,
        user_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> str:
        """Replace any outstanding token of this purpose for the email and return the new raw token."""
        if purpose not in PURPOSES:
            raise ValueError(f"Unknown token purpose: {purpose}")
        email = email.lower()
        self.revoke(purpose, email)

        selector = secrets.token_urlsafe(12)
        verifier = secrets.token_urlsafe(32)
        result = self.supabase.table(TOKENS_TABLE).insert({
            "selector": selector,
            "token_hash": get_password_hash(verifier),
            "purpose": purpose,
            "email": email,
            "user_id": user_id,
            "workspace_id": workspace_id,
            "expires_at": (_now() + ttl).isoformat(),
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to issue token")
        logger.info(f"Issued {purpose} token for {mask_email(email)}")
        return f"{selector}.{verifier}"

    def revoke(self, purpose: str, email: str) -> None:
        self.supabase.table(TOKENS_TABLE)\
            .delete()\
            .eq("purpose", purpose)\
            .eq("email", email.lower())\
            .execute()

    def revoke_user(self, user_id: str) -> None:
        self.supabase.table(TOKENS_TABLE)\
            .delete()\
            .eq("user_id", user_id)\
            .execute()

    def _candidates(self, purpose: str, selector: str, email: Optional[str]):
        query = self.supabase.table(TOKENS_TABLE)\
            .select("*")\
            .eq("purpose", purpose)\
            .eq("selector", selector)\
            .gt("expires_at", _now().isoformat())
        if email:
            query = query.eq("email", email.lower())
        return query.execute().data or []

    def _find(self, purpose: str, raw_token: str, email: Optional[str]) -> Dict[str, Any]:
        if not raw_token or not isinstance(raw_token, str):
            raise InvalidTokenError()
        selector, _, verifier = raw_token.partition(".")
        if not selector or not verifier:
            raise InvalidTokenError()
        for row in self._candidates(purpose, selector, email):
            if _is_live(row) and verify_password(verifier, row.get("token_hash")):
                return row
        raise InvalidTokenError()

    def peek(self, purpose: str, raw_token: str, email: Optional[str] = None) -> Dict[str, Any]:
        """Validate without consuming."""
        return self._find(purpose, raw_token, email)

    def consume(self, purpose: str, raw_token: str, email: Optional[str] = None) -> Dict[str, Any]:
        """Validate and claim the token. A second call with the same token fails."""
        row = self._find(purpose, raw_token, email)
        claimed = self.supabase.table(TOKENS_TABLE)\
            .delete()\
            .eq("id", row["id"])\
            .execute()
        if not claimed.data:
            logger.warning(f"{purpose} token for {mask_email(row.get('email'))} was already consumed")
            raise InvalidTokenError()
        return claimed.data[0]

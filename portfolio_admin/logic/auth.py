"""Single-operator authentication provider.

The admin credential is verified with passlib (``pbkdf2_sha256``) and a
session is an HS256 token issued by python-jose. Listeners registered with
``subscribe`` are called with the new session (or ``None``) on every sign-in
and sign-out.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from portfolio_admin.errors import AuthError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ROLE = "admin"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass(frozen=True)
class Session:
    email: str
    token: str
    expires_at: datetime

    def as_dict(self) -> dict:
        return {
            "email": self.email,
            "access_token": self.token,
            "token_type": "bearer",
            "expires_at": self.expires_at.isoformat(),
        }


SessionListener = Callable[[Optional[Session]], None]


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


class AuthProvider:
    def __init__(
        self,
        admin_email: str,
        password_hash: str,
        secret: str,
        ttl_minutes: int = 60 * 12,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.admin_email = admin_email
        self.password_hash = password_hash
        self.secret = secret
        self.ttl = timedelta(minutes=ttl_minutes)
        self.clock = clock
        self._current: Optional[Session] = None
        # jti -> token expiry
        self._revoked: Dict[str, datetime] = {}
        self._listeners: List[SessionListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a session-change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.error("auth.listener_failed listener=%r", listener, exc_info=True)

    def sign_in(self, email: str, password: str) -> Session:
        email = (email or "").strip()
        if email.lower() != self.admin_email.lower() or not password:
            logger.warning("auth.sign_in_rejected email=%s", email)
            raise AuthError("Invalid credentials")
        if not pwd_context.verify(password, self.password_hash):
            logger.warning("auth.sign_in_rejected email=%s", email)
            raise AuthError("Invalid credentials")
        expires_at = self.clock() + self.ttl
        claims = {
            "sub": self.admin_email,
            "role": ROLE,
            "jti": uuid.uuid4().hex,
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(claims, self.secret, algorithm=ALGORITHM)
        session = Session(email=self.admin_email, token=token, expires_at=expires_at)
        with self._lock:
            self._current = session
        self._prune_revoked()
        logger.info("auth.signed_in email=%s", self.admin_email)
        self._notify(session)
        return session

    def verify(self, token: Optional[str]) -> Session:
        """Return the session a token belongs to; raises AuthError otherwise."""
        if not token:
            raise AuthError("Not authenticated")
        try:
            claims = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except JWTError as e:
            raise AuthError("Invalid or expired session token") from e
        if claims.get("sub") != self.admin_email or claims.get("role") != ROLE:
            raise AuthError("Invalid session token")
        if claims.get("jti") in self._revoked:
            raise AuthError("Session has been signed out")
        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        return Session(email=claims["sub"], token=token, expires_at=expires_at)

    def sign_out(self, token: Optional[str] = None) -> None:
        target = token or (self._current.token if self._current else None)
        if target:
            try:
                # Only tokens this provider signed are remembered
                claims = jwt.decode(target, self.secret, algorithms=[ALGORITHM], options={"verify_exp": False})
            except JWTError:
                logger.warning("auth.sign_out_unverifiable_token")
            else:
                if claims.get("jti") and claims.get("exp"):
                    with self._lock:
                        self._revoked[claims["jti"]] = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        with self._lock:
            self._current = None
        self._prune_revoked()
        logger.info("auth.signed_out")
        self._notify(None)

    def _prune_revoked(self) -> None:
        now = self.clock()
        with self._lock:
            expired = [jti for jti, expires_at in self._revoked.items() if expires_at <= now]
            for jti in expired:
                del self._revoked[jti]
        if expired:
            logger.debug("auth.revocations_pruned count=%s", len(expired))

    def current(self) -> Optional[Session]:
        session = self._current
        if session is None:
            return None
        if session.expires_at <= self.clock():
            with self._lock:
                self._current = None
            return None
        return session


__all__ = ["AuthProvider", "Session", "hash_password", "pwd_context"]

import json
import logging
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from equiptrak.client.cache import QueryCache
from equiptrak.client.http import ResponseFormatError
from equiptrak.client.types import AuthSession
from equiptrak.core.config import settings

logger = logging.getLogger("equiptrak.client")

Listener = Callable[[Optional[AuthSession]], None]


class SessionStore:
    """Persists the signed-in session as JSON on disk."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.SESSION_FILE)

    def load(self) -> Optional[AuthSession]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            session = AuthSession.model_validate(data)
        except (ValueError, ValidationError) as exc:
            logger.warning("Discarding invalid stored session: %s", exc)
            self.clear()
            return None
        if not session.id or not session.email or not session.token:
            logger.warning("Discarding incomplete stored session")
            self.clear()
            return None
        return session

    def save(self, session: AuthSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class AuthContext:
    """Holds the signed-in session. Signing out also empties ``cache``."""

    def __init__(self, store: SessionStore | None = None, cache: QueryCache | None = None) -> None:
        self._store = store
        self._cache = cache
        self._listeners: list[Listener] = []
        self._session: Optional[AuthSession] = store.load() if store else None

    @property
    def session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, session: Optional[AuthSession]) -> None:
        was_present = self._session is not None
        self._session = session
        if was_present != (session is not None):
            for listener in list(self._listeners):
                listener(session)

    def sign_in(self, session: AuthSession | dict) -> AuthSession:
        if isinstance(session, dict):
            if not session.get("token"):
                raise ValueError("Token is required for sign in")
            session = AuthSession.model_validate(session)
        if not session.token:
            raise ValueError("Token is required for sign in")
        if not session.id or not session.email:
            raise ValueError("Invalid user data")
        logger.info("Signing in user %s (%s)", session.email, session.role)
        if self._store:
            self._store.save(session)
        self._set(session)
        return session

    def sign_out(self) -> None:
        if self._session is not None:
            logger.info("Signing out user %s", self._session.email)
        if self._store:
            self._store.clear()
        if self._cache is not None:
            self._cache.clear()
        self._set(None)


async def login(client, auth: AuthContext, email: str, password: str) -> AuthSession:
    """Posts credentials and signs the returned user in."""
    payload = await client.post("/api/auth/login", json={"email": email, "password": password}, auth=False)
    if not isinstance(payload, dict):
        raise ResponseFormatError("Unexpected login response")
    user = payload.get("user") or {}
    return auth.sign_in({**user, "token": payload.get("token")})

import logging
from typing import Callable, Optional

from equiptrak.client.session import AuthContext
from equiptrak.core.config import settings

logger = logging.getLogger("equiptrak.client")


class RouteContext:
    """Current location plus navigation, observable by guards."""

    def __init__(self, path: str = "/") -> None:
        self._path = path
        self._listeners: list[Callable[[str], None]] = []
        self.history: list[str] = [path]

    @property
    def path(self) -> str:
        return self._path

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def navigate(self, path: str) -> None:
        if path == self._path:
            return
        self._path = path
        self.history.append(path)
        for listener in list(self._listeners):
            listener(path)


class AuthRedirectGuard:
    def __init__(self, auth: AuthContext, route: RouteContext, login_path: Optional[str] = None) -> None:
        self.auth = auth
        self.route = route
        self.login_path = login_path or settings.LOGIN_PATH
        self._unsubscribers: list[Callable[[], None]] = []

    def check(self) -> bool:
        """Redirects to the login route when signed out; returns True if it navigated."""
        if self.auth.is_authenticated or self.route.path == self.login_path:
            return False
        logger.info("No session on %s, redirecting to %s", self.route.path, self.login_path)
        self.route.navigate(self.login_path)
        return True

    def attach(self) -> "AuthRedirectGuard":
        self.detach()
        self._unsubscribers = [
            self.auth.subscribe(lambda _session: self.check()),
            self.route.subscribe(lambda _path: self.check()),
        ]
        self.check()
        return self

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

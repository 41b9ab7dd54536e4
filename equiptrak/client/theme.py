from typing import Callable, Optional

DARK_CLASS = "dark"


class ThemeContext:
    def __init__(self, theme: str = "system") -> None:
        self._theme = theme
        self._listeners: list[Callable[[str], None]] = []

    @property
    def theme(self) -> str:
        return self._theme

    def set_theme(self, theme: str) -> None:
        self._theme = theme
        for listener in list(self._listeners):
            listener(theme)

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class RootElement:
    """Class list of the document root; counts every write."""

    def __init__(self) -> None:
        self.classes: set[str] = set()
        self.mutations = 0

    def add_class(self, name: str) -> None:
        self.classes.add(name)
        self.mutations += 1

    def remove_class(self, name: str) -> None:
        self.classes.discard(name)
        self.mutations += 1


class ThemeClassEffect:
    def __init__(self, theme_context: ThemeContext, root: RootElement) -> None:
        self.theme_context = theme_context
        self.root = root
        self.last_applied: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    def apply(self, theme: str) -> bool:
        if theme == self.last_applied:
            return False
        if theme == "dark":
            self.root.add_class(DARK_CLASS)
        else:
            self.root.remove_class(DARK_CLASS)
        self.last_applied = theme
        return True

    def attach(self) -> "ThemeClassEffect":
        self.detach()
        self._unsubscribe = self.theme_context.subscribe(self.apply)
        self.apply(self.theme_context.theme)
        return self

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

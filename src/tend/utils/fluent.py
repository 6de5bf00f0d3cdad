"""Base class for single-use fluent builders."""

from typing import Generic, TypeVar

T = TypeVar("T")


class FluentBuilder(Generic[T]):
    """
    Base class for builders whose setters return self.

    A builder may be finalized once; setters called after that raise.

    Example:
        class CommandBuilder(FluentBuilder["CommandBuilder"]):
            def command(self, text: str) -> "CommandBuilder":
                self._check_not_built()
                self._text = text
                return self

            def build(self) -> str:
                self._mark_built()
                return self._text
    """

    def __init__(self) -> None:
        self._built = False

    def _check_not_built(self) -> None:
        """Raise if build() has already been called."""
        if self._built:
            raise RuntimeError(f"{type(self).__name__} has already been built")

    def _mark_built(self) -> None:
        self._built = True

    @property
    def is_built(self) -> bool:
        return self._built

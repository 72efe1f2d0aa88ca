from dataclasses import dataclass
from typing import Literal

NoticeLevel = Literal["info", "success", "error"]


@dataclass(frozen=True)
class Notice:
    """A user-visible message (rendered as a toast by the front end)."""

    level: NoticeLevel
    message: str


class NoticeBoard:
    """
    Collects notices raised by the session layer until the UI drains them.
    """

    def __init__(self) -> None:
        self._notices: list[Notice] = []

    def info(self, message: str) -> None:
        self._notices.append(Notice("info", message))

    def success(self, message: str) -> None:
        self._notices.append(Notice("success", message))

    def error(self, message: str) -> None:
        self._notices.append(Notice("error", message))

    @property
    def items(self) -> tuple[Notice, ...]:
        return tuple(self._notices)

    def drain(self) -> list[Notice]:
        """Return pending notices and forget them."""
        notices, self._notices = self._notices, []
        return notices

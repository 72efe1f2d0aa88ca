import logging
from pathlib import Path

from pydantic import ValidationError

from pricewatch.core.profiles import Profile

logger = logging.getLogger(__name__)


class SessionCache:
    """
    Last known profile cached as a JSON file on disk.

    Only used to paint the UI before the provider answers; never
    authoritative.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Profile | None:
        if not self.path.exists():
            return None
        try:
            return Profile.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (ValidationError, UnicodeDecodeError) as exc:
            logger.warning("Discarding corrupt session cache at %s: %s", self.path, exc)
            self.clear()
            return None

    def save(self, profile: Profile) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(profile.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class MemorySessionCache:
    def __init__(self, profile: Profile | None = None):
        self.profile = profile

    def load(self) -> Profile | None:
        return self.profile

    def save(self, profile: Profile) -> None:
        self.profile = profile

    def clear(self) -> None:
        self.profile = None

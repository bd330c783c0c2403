"""Detection of "new API key issued" announcements.

The remote service announces a freshly issued key with a line such as
``&aYour new API key is &r&b<key>&r``. Such a line is a trusted source: the
key it carries is adopted without re-validation.
"""

import re

from keyman.auth.models import mask_key
from keyman.auth.state import KeyState
from keyman.core.logging import get_logger


logger = get_logger(__name__)

FORMATTING_CODE_RE = re.compile(r"[&§][0-9a-fk-or]", re.IGNORECASE)
NEW_KEY_RE = re.compile(r"^\s*Your new API key is\s+(?P<key>[^\s]+)\s*$")


def strip_formatting(line: str) -> str:
    """Remove ``&x`` / ``§x`` colour and style codes."""
    return FORMATTING_CODE_RE.sub("", line)


def extract_new_key(line: str) -> str | None:
    """Return the key announced by ``line``, or None if it is not an announcement."""
    match = NEW_KEY_RE.match(strip_formatting(line))
    if match is None:
        return None
    return match.group("key")


class AnnouncementWatcher:
    """Feeds announced keys into a :class:`KeyState`."""

    def __init__(self, state: KeyState):
        self.state = state

    async def feed(self, line: str) -> str | None:
        """Inspect one line and adopt the key it announces.

        Returns:
            The adopted key, or None if the line was not an announcement
        """
        key = extract_new_key(line)
        if key is None:
            return None
        logger.info("new_key_announced", key=mask_key(key))
        await self.state.replace(key)
        return key

"""Process-wide set of revoked session tokens."""

import logging
import threading

logger = logging.getLogger(__name__)


class TokenBlacklist:
    """
    Bounded, insertion-ordered set of revoked token strings.

    Presence means "revoked" regardless of signature validity. When the set
    grows past ``max_size`` it is compacted to the ``keep`` most recent
    entries. A dropped entry may belong to a token that is still signed and
    unexpired, so compaction is best-effort; token expiry bounds the damage.

    Insertion and compaction share one lock, so an entry added while another
    thread compacts is never lost.

    Example:
        >>> blacklist = TokenBlacklist(max_size=10_000, keep=5_000)
        >>> blacklist.add("eyJ...")
        >>> "eyJ..." in blacklist
        True
    """

    def __init__(self, max_size: int = 10_000, keep: int = 5_000) -> None:
        if keep > max_size:
            raise ValueError("keep must not exceed max_size")
        self.max_size = max_size
        self.keep = keep
        self._entries: dict[str, None] = {}
        self._lock = threading.Lock()

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, token: str) -> None:
        if not token:
            return
        with self._lock:
            self._entries.pop(token, None)
            self._entries[token] = None
            if len(self._entries) > self.max_size:
                self._compact()

    def _compact(self) -> None:
        dropped = len(self._entries) - self.keep
        recent = list(self._entries)[-self.keep :] if self.keep else []
        self._entries = dict.fromkeys(recent)
        logger.info("Token blacklist compacted, dropped %d oldest entries", dropped)

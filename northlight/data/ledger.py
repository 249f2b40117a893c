"""Vote ledger — the feedback items this device has already voted for."""

from __future__ import annotations

import logging
import threading
from typing import Awaitable, Callable, Optional

from northlight.core.config import IdentityConfig
from northlight.core.errors import AlreadyVoted
from northlight.data.fingerprint import generate_user_identifier
from northlight.data.store import DataStore

logger = logging.getLogger(__name__)

VOTED_IDS_KEY = "NorthlightVotedFeedbackIds"
USER_IDENTIFIER_KEY = "user-identifier"


class VoteLedger:
    """Client-side at-most-one-vote-per-item guard.

    The set is loaded from the store on first use and held in memory; every
    insertion writes the whole set back. Entries are never removed.

    Two concurrent ``vote_for`` calls for the same id can both pass the
    ``has_voted`` check before either completes; the server decides in that
    case and the id is still recorded once.
    """

    def __init__(self, store: DataStore, config: Optional[IdentityConfig] = None):
        self.store = store
        self.config = config
        self._lock = threading.Lock()
        self._voted: Optional[set[str]] = None

    def _load(self) -> set[str]:
        # Caller holds the lock.
        if self._voted is None:
            self._voted = set(self.store.get_string_list(VOTED_IDS_KEY))
            logger.debug("Loaded %d voted feedback ids", len(self._voted))
        return self._voted

    def has_voted(self, feedback_id: str) -> bool:
        with self._lock:
            return feedback_id in self._load()

    def voted_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._load())

    def record_vote(self, feedback_id: str) -> None:
        """Add *feedback_id* and persist. Only call after the server confirmed."""
        with self._lock:
            voted = self._load()
            if feedback_id in voted:
                return
            voted.add(feedback_id)
            self.store.set_string_list(VOTED_IDS_KEY, sorted(voted))

    def ensure_user_identifier(
        self, config: Optional[IdentityConfig] = None
    ) -> Optional[str]:
        """Generate, remember and persist a user identifier if none is set.

        *config* defaults to the ledger's own; returns None when neither is set.
        """
        if config is None:
            config = self.config
        if config is None:
            return None
        with self._lock:
            identifier = config.user_identifier
            if identifier:
                return identifier
            identifier = self.store.get_config(USER_IDENTIFIER_KEY)
            if not identifier:
                identifier = generate_user_identifier()
                self.store.set_config(USER_IDENTIFIER_KEY, identifier)
                logger.info("Generated user identifier for voting")
            config.set_user_identifier(identifier)
            return identifier

    async def vote_for(
        self,
        feedback_id: str,
        perform_remote_vote: Callable[[], Awaitable[int]],
        config: Optional[IdentityConfig] = None,
    ) -> int:
        """Vote once: skip if already voted, else vote remotely and record.

        The user identifier is ensured on *config* (or the ledger's own)
        before the remote vote runs.

        Raises:
            AlreadyVoted: This device already voted; no request is made.
            NorthlightError: Whatever the remote vote raised; nothing recorded.
        """
        if self.has_voted(feedback_id):
            raise AlreadyVoted(feedback_id)
        self.ensure_user_identifier(config)
        vote_count = await perform_remote_vote()
        self.record_vote(feedback_id)
        return vote_count

"""Public client — feedback, bug reports, votes, feedback list and roadmap."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Coroutine, Optional, TypeVar
from urllib.parse import quote

from northlight.core import device
from northlight.core.config import IdentityConfig
from northlight.core.device import DeviceInfoProvider
from northlight.core.errors import InvalidInput, MissingUserIdentifier
from northlight.core.models import (
    BugResponse,
    BugSubmission,
    FeedbackItem,
    FeedbackListResponse,
    FeedbackResponse,
    FeedbackSubmission,
    RoadmapItem,
    RoadmapResponse,
    Severity,
    VoteRequest,
    VoteResponse,
)
from northlight.core.transport import TransportClient
from northlight.data.ledger import VoteLedger
from northlight.data.store import DataStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_TITLE_LENGTH = 255


def _validate_submission(title: str, description: str) -> None:
    if not title or len(title) > MAX_TITLE_LENGTH:
        raise InvalidInput(
            f"Title must be between 1 and {MAX_TITLE_LENGTH} characters"
        )
    if not description:
        raise InvalidInput("Description cannot be empty")


class NorthlightClient:
    """Async client for the Northlight feedback API."""

    def __init__(
        self,
        config: IdentityConfig,
        transport: Optional[TransportClient] = None,
        ledger: Optional[VoteLedger] = None,
        device_provider: Optional[DeviceInfoProvider] = None,
    ):
        self.config = config
        self.transport = transport or TransportClient(config)
        self.ledger = ledger
        self.device_provider = device_provider

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self) -> NorthlightClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def submit_feedback(
        self,
        title: str,
        description: str,
        category: Optional[str] = None,
    ) -> str:
        """Submit a feature request and return its feedback id."""
        _validate_submission(title, description)
        submission = FeedbackSubmission(
            title=title,
            description=description,
            category=category,
            user_email=self.config.user_email,
            device_info=device.capture(provider=self.device_provider),
        )
        logger.info("Submitting feedback with title: %s", title)
        response = await self.transport.send(
            "/feedback",
            FeedbackResponse.from_dict,
            method="POST",
            body=submission.to_dict(),
        )
        return response.feedback_id

    async def report_bug(
        self,
        title: str,
        description: str,
        severity: Severity = Severity.MEDIUM,
        steps_to_reproduce: Optional[str] = None,
    ) -> str:
        """Submit a bug report with extended device info; return the bug id."""
        _validate_submission(title, description)
        submission = BugSubmission(
            title=title,
            description=description,
            severity=severity,
            steps_to_reproduce=steps_to_reproduce,
            user_email=self.config.user_email,
            device_info=device.capture(
                include_extended=True, provider=self.device_provider
            ),
        )
        logger.info("Reporting %s bug: %s", severity.value, title)
        response = await self.transport.send(
            "/bugs",
            BugResponse.from_dict,
            method="POST",
            body=submission.to_dict(),
        )
        return response.bug_id

    async def vote(self, feedback_id: str) -> int:
        """Cast a vote and return the new vote count.

        Does not consult the vote ledger; see ``vote_for``.
        """
        user_identifier = self.config.user_identifier
        if not user_identifier:
            raise MissingUserIdentifier()
        response = await self.transport.send(
            f"/feedback/{quote(feedback_id, safe='')}/vote",
            VoteResponse.from_dict,
            method="POST",
            body=VoteRequest(user_identifier=user_identifier).to_dict(),
        )
        return response.vote_count

    async def vote_for(self, feedback_id: str) -> int:
        """Vote at most once per device, recording the vote in the ledger."""
        if self.ledger is None:
            raise RuntimeError("vote_for requires a VoteLedger")
        return await self.ledger.vote_for(
            feedback_id, lambda: self.vote(feedback_id), config=self.config
        )

    async def get_public_feedback(self) -> list[FeedbackItem]:
        response = await self.transport.send(
            "/feedback", FeedbackListResponse.from_dict
        )
        return response.feedback

    async def get_roadmap(self) -> list[RoadmapItem]:
        response = await self.transport.send(
            "/roadmap", RoadmapResponse.from_dict
        )
        return response.roadmap_items


def default_client(store: Optional[DataStore] = None) -> NorthlightClient:
    """Wire up a client from the environment and the local data store."""
    store = store or DataStore()
    config = IdentityConfig.from_environment(store)
    return NorthlightClient(config, ledger=VoteLedger(store, config))


# ── Callback adapter ─────────────────────────────────────────────────

Callback = Callable[[Optional[T], Optional[BaseException]], None]


class CallbackClient:
    """Callback-style facade over NorthlightClient.

    Every call returns immediately; ``callback(result, None)`` or
    ``callback(None, error)`` is invoked exactly once from a worker thread
    that runs the client's event loop.
    """

    def __init__(self, client: NorthlightClient):
        self.client = client
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever,
            name="northlight-callbacks",
            daemon=True,
        )
        self._thread.start()

    def _dispatch(
        self,
        coro: Coroutine[Any, Any, T],
        callback: Callback[T],
    ) -> concurrent.futures.Future:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)

        def _done(f: concurrent.futures.Future) -> None:
            if f.cancelled():
                callback(None, concurrent.futures.CancelledError())
                return
            error = f.exception()
            if error is not None:
                callback(None, error)
            else:
                callback(f.result(), None)

        future.add_done_callback(_done)
        return future

    def submit_feedback(
        self,
        title: str,
        description: str,
        callback: Callback[str],
        category: Optional[str] = None,
    ) -> concurrent.futures.Future:
        return self._dispatch(
            self.client.submit_feedback(title, description, category), callback
        )

    def report_bug(
        self,
        title: str,
        description: str,
        callback: Callback[str],
        severity: Severity = Severity.MEDIUM,
        steps_to_reproduce: Optional[str] = None,
    ) -> concurrent.futures.Future:
        return self._dispatch(
            self.client.report_bug(
                title, description, severity, steps_to_reproduce
            ),
            callback,
        )

    def vote(self, feedback_id: str, callback: Callback[int]) -> concurrent.futures.Future:
        return self._dispatch(self.client.vote(feedback_id), callback)

    def vote_for(
        self, feedback_id: str, callback: Callback[int]
    ) -> concurrent.futures.Future:
        return self._dispatch(self.client.vote_for(feedback_id), callback)

    def get_public_feedback(
        self, callback: Callback[list[FeedbackItem]]
    ) -> concurrent.futures.Future:
        return self._dispatch(self.client.get_public_feedback(), callback)

    def get_roadmap(
        self, callback: Callback[list[RoadmapItem]]
    ) -> concurrent.futures.Future:
        return self._dispatch(self.client.get_roadmap(), callback)

    def close(self) -> None:
        """Close the HTTP client and stop the worker loop."""
        asyncio.run_coroutine_threadsafe(
            self.client.aclose(), self._loop
        ).result()
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()

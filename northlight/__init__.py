"""Northlight - feedback, bug reports and voting for your users."""

from northlight.core.config import SDK_VERSION as __version__
from northlight.core.config import IdentityConfig
from northlight.core.client import CallbackClient, NorthlightClient, default_client
from northlight.core.models import FeedbackItem, RoadmapItem, Severity

__all__ = [
    "__version__",
    "CallbackClient",
    "FeedbackItem",
    "IdentityConfig",
    "NorthlightClient",
    "RoadmapItem",
    "Severity",
    "default_client",
]

"""Wire contracts — submissions, responses and the items they carry.

Every wire payload is snake_case JSON. Request types expose ``to_dict()``;
response types expose a ``from_dict()`` classmethod that raises ``ValueError``
(or ``KeyError``/``TypeError``) on a malformed payload so the transport can
report it as a decoding failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


STATUS_ORDER = [
    "pending",
    "suggested",
    "approved",
    "in_progress",
    "completed",
    "rejected",
]


def _check_object(data: Any) -> None:
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")


def _require(data: dict[str, Any], key: str, kind: type) -> Any:
    _check_object(data)
    if key not in data or data[key] is None:
        raise KeyError(key)
    value = data[key]
    # bool is an int subclass; never accept it for numeric fields
    if kind is int and isinstance(value, bool):
        raise TypeError(f"field {key!r} must be int")
    if not isinstance(value, kind):
        raise TypeError(f"field {key!r} must be {kind.__name__}")
    return value


def _optional(data: dict[str, Any], key: str, kind: type) -> Any:
    _check_object(data)
    if data.get(key) is None:
        return None
    return _require(data, key, kind)


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ── Device info ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class DeviceInfo:
    model: str
    os_version: str
    app_version: str
    screen_resolution: str  # "WxH" in pixels
    locale: str
    free_memory: Optional[str] = None  # e.g. "512MB"
    battery_level: Optional[float] = None  # 0.0–1.0
    network_type: Optional[str] = None  # "wifi", "cellular", "none"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "model": self.model,
            "os_version": self.os_version,
            "app_version": self.app_version,
            "screen_resolution": self.screen_resolution,
            "locale": self.locale,
        }
        if self.free_memory is not None:
            d["free_memory"] = self.free_memory
        if self.battery_level is not None:
            d["battery_level"] = self.battery_level
        if self.network_type is not None:
            d["network_type"] = self.network_type
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceInfo:
        _check_object(data)
        battery = data.get("battery_level")
        if battery is not None and (
            isinstance(battery, bool) or not isinstance(battery, (int, float))
        ):
            raise TypeError("field 'battery_level' must be a number")
        return cls(
            model=_require(data, "model", str),
            os_version=_require(data, "os_version", str),
            app_version=_require(data, "app_version", str),
            screen_resolution=_require(data, "screen_resolution", str),
            locale=_require(data, "locale", str),
            free_memory=_optional(data, "free_memory", str),
            battery_level=float(battery) if battery is not None else None,
            network_type=_optional(data, "network_type", str),
        )


# ── Submissions ──────────────────────────────────────────────────────


@dataclass
class FeedbackSubmission:
    title: str
    description: str
    device_info: DeviceInfo
    category: Optional[str] = None
    user_email: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
        }
        if self.category is not None:
            d["category"] = self.category
        if self.user_email is not None:
            d["user_email"] = self.user_email
        d["device_info"] = self.device_info.to_dict()
        return d


@dataclass
class BugSubmission:
    title: str
    description: str
    device_info: DeviceInfo
    severity: Severity = Severity.MEDIUM
    steps_to_reproduce: Optional[str] = None
    user_email: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
        }
        if self.steps_to_reproduce is not None:
            d["steps_to_reproduce"] = self.steps_to_reproduce
        if self.user_email is not None:
            d["user_email"] = self.user_email
        d["device_info"] = self.device_info.to_dict()
        return d


@dataclass
class VoteRequest:
    user_identifier: str

    def to_dict(self) -> dict[str, Any]:
        return {"user_identifier": self.user_identifier}


# ── Responses ────────────────────────────────────────────────────────


@dataclass
class FeedbackResponse:
    success: bool
    feedback_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeedbackResponse:
        return cls(
            success=_require(data, "success", bool),
            feedback_id=_require(data, "feedback_id", str),
        )


@dataclass
class BugResponse:
    success: bool
    bug_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BugResponse:
        return cls(
            success=_require(data, "success", bool),
            bug_id=_require(data, "bug_id", str),
        )


@dataclass
class VoteResponse:
    success: bool
    vote_count: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VoteResponse:
        return cls(
            success=_require(data, "success", bool),
            vote_count=_require(data, "vote_count", int),
        )


@dataclass(frozen=True)
class FeedbackItem:
    id: str
    title: str
    description: str
    status: str
    created_at: str
    updated_at: str
    vote_count: int = 0
    category: Optional[str] = None
    project_id: Optional[str] = None
    platform: Optional[str] = None
    user_email: Optional[str] = None
    device_info: Optional[DeviceInfo] = None

    @property
    def display_status(self) -> str:
        """Status rendered for people: "in_progress" -> "In Progress"."""
        words = self.status.replace("_", " ").split()
        return " ".join(w.capitalize() for w in words)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeedbackItem:
        vote_count = _optional(data, "vote_count", int)
        device = _optional(data, "device_info", dict)
        return cls(
            id=_require(data, "id", str),
            title=_require(data, "title", str),
            description=_require(data, "description", str),
            status=_require(data, "status", str),
            created_at=_require(data, "created_at", str),
            updated_at=_require(data, "updated_at", str),
            vote_count=vote_count if vote_count is not None else 0,
            category=_optional(data, "category", str),
            project_id=_optional(data, "project_id", str),
            platform=_optional(data, "platform", str),
            user_email=_optional(data, "user_email", str),
            device_info=DeviceInfo.from_dict(device) if device else None,
        )


@dataclass
class FeedbackListResponse:
    success: bool
    feedback: list[FeedbackItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeedbackListResponse:
        items = _require(data, "feedback", list)
        return cls(
            success=_require(data, "success", bool),
            feedback=[FeedbackItem.from_dict(i) for i in items],
        )


@dataclass(frozen=True)
class Feature:
    title: str
    description: str


@dataclass(frozen=True)
class RoadmapItem:
    id: str
    feature: Feature
    position: int
    estimated_date: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoadmapItem:
        feature = _require(data, "feature", dict)
        return cls(
            id=_require(data, "id", str),
            feature=Feature(
                title=_require(feature, "title", str),
                description=_require(feature, "description", str),
            ),
            position=_require(data, "position", int),
            estimated_date=_require(data, "estimated_date", str),
        )


@dataclass
class RoadmapResponse:
    roadmap_items: list[RoadmapItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoadmapResponse:
        items = _require(data, "roadmap_items", list)
        return cls(roadmap_items=[RoadmapItem.from_dict(i) for i in items])


# ── List helpers ─────────────────────────────────────────────────────


def sort_by_status(items: list[FeedbackItem]) -> list[FeedbackItem]:
    """Order by lifecycle status, unknown statuses last, then by votes."""
    rank = {s: i for i, s in enumerate(STATUS_ORDER)}
    return sorted(
        items,
        key=lambda it: (rank.get(it.status.lower(), len(rank)), -it.vote_count),
    )


def filter_by_status(
    items: list[FeedbackItem], status: Optional[str]
) -> list[FeedbackItem]:
    if not status:
        return list(items)
    wanted = status.lower()
    return [it for it in items if it.status.lower() == wanted]


def apply_vote_count(
    items: list[FeedbackItem], feedback_id: str, vote_count: int
) -> list[FeedbackItem]:
    """Return a copy of *items* with one item's confirmed vote count set."""
    return [
        replace(it, vote_count=vote_count) if it.id == feedback_id else it
        for it in items
    ]

"""Derive calendar event drafts from canonical work items.

Mapping is deterministic: the same item always yields the same draft, so
re-running a sync only rewrites events whose source changed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from app.services.items import (
    MEETING_DATE_FIELD,
    TARGET_DATE_FIELD,
    Issue,
    Label,
    ProjectItem,
    ProjectItemType,
    WorkItem,
)

logger = logging.getLogger(__name__)

BODY_PREVIEW_LIMIT = 500

# Google Calendar color ids:
# 1 Lavender, 2 Sage, 3 Grape, 4 Flamingo, 5 Banana, 6 Tangerine,
# 7 Peacock, 8 Graphite, 9 Blueberry, 10 Basil, 11 Tomato
COLOR_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("critical", "urgent"), "11"),
    (("bug",), "11"),
    (("feature",), "9"),
    (("enhancement",), "10"),
    (("documentation",), "7"),
    (("question",), "5"),
)
DEFAULT_COLOR = "8"

_TYPE_GLYPHS = {
    ProjectItemType.DRAFT_ISSUE: "\U0001f4dd",
    ProjectItemType.PULL_REQUEST: "\U0001f500",
    ProjectItemType.ISSUE: "\U0001f4cb",
}
_TYPE_NAMES = {
    ProjectItemType.DRAFT_ISSUE: "Draft Issue",
    ProjectItemType.PULL_REQUEST: "Pull Request",
    ProjectItemType.ISSUE: "Issue",
}


@dataclass(frozen=True)
class EventTime:
    """Either an all-day marker (`day`) or a timestamp with a time zone."""

    day: Optional[date] = None
    date_time: Optional[datetime] = None
    time_zone: Optional[str] = None

    @classmethod
    def all_day(cls, day: date) -> "EventTime":
        return cls(day=day)

    @classmethod
    def timed(cls, moment: datetime) -> "EventTime":
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return cls(date_time=moment.astimezone(timezone.utc), time_zone="UTC")

    @property
    def is_all_day(self) -> bool:
        return self.day is not None

    def default_end(self) -> "EventTime":
        """Exclusive next day for all-day events, one hour later otherwise."""
        if self.day is not None:
            return EventTime.all_day(self.day + timedelta(days=1))
        return EventTime(date_time=self.date_time + timedelta(hours=1), time_zone=self.time_zone)

    def to_google(self) -> Dict[str, str]:
        if self.day is not None:
            return {"date": self.day.isoformat()}
        return {"dateTime": self.date_time.isoformat(), "timeZone": self.time_zone or "UTC"}


@dataclass(frozen=True)
class Reminder:
    method: str
    minutes: int


@dataclass(frozen=True)
class CalendarEventDraft:
    summary: str
    description: str
    start: EventTime
    end: EventTime
    idempotency_key: str
    source_url: str
    source_label: str
    color_id: str = DEFAULT_COLOR
    reminders: Tuple[Reminder, ...] = ()


def determine_color(labels: Iterable[Label]) -> str:
    """First matching rule wins; label names match by lower-cased substring."""
    names = [label.name.lower() for label in labels]
    for needles, color in COLOR_RULES:
        if any(needle in name for name in names for needle in needles):
            return color
    return DEFAULT_COLOR


def truncate_body(body: str, limit: int = BODY_PREVIEW_LIMIT) -> str:
    if len(body) > limit:
        return body[:limit] + "..."
    return body


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%d %H:%M UTC")


def _compose(
    header: str,
    body: str,
    url: str,
    details: List[str],
    created_at: datetime,
    updated_at: datetime,
) -> str:
    parts = [header, ""]
    if body:
        parts.extend([truncate_body(body), ""])
    parts.append(url)
    if details:
        parts.append("")
        parts.extend(details)
    parts.append("")
    parts.append(f"Created: {format_timestamp(created_at)}")
    parts.append(f"Updated: {format_timestamp(updated_at)}")
    return "\n".join(parts)


def _people_and_labels(assignees: Iterable[str], labels: Iterable[Label]) -> List[str]:
    details = []
    assignees = list(assignees)
    labels = list(labels)
    if assignees:
        details.append(f"Assignees: {', '.join(assignees)}")
    if labels:
        details.append(f"Labels: {', '.join(label.name for label in labels)}")
    return details


class EventMapper:
    """Maps issues and project items to calendar event drafts"""

    def __init__(self, reminder_minutes: Optional[int] = 30):
        self.reminders: Tuple[Reminder, ...] = (
            (Reminder(method="popup", minutes=reminder_minutes),) if reminder_minutes else ()
        )

    def map(self, item: WorkItem) -> CalendarEventDraft:
        if isinstance(item, Issue):
            return self.map_issue(item)
        return self.map_project_item(item)

    # Issues

    @staticmethod
    def issue_start(issue: Issue) -> EventTime:
        """Milestone due date (all-day) if any, else last update (timed, UTC)."""
        if issue.milestone is not None and issue.milestone.due_on is not None:
            return EventTime.all_day(issue.milestone.due_on)
        return EventTime.timed(issue.updated_at)

    @staticmethod
    def issue_description(issue: Issue) -> str:
        details = _people_and_labels(issue.assignees, issue.labels)
        if issue.milestone is not None:
            details.append(f"Milestone: {issue.milestone.title}")
            if issue.milestone.due_on is not None:
                details.append(f"Due: {issue.milestone.due_on.isoformat()}")
        return _compose(
            f"Issue #{issue.number} from {issue.repository.full_name}",
            issue.body,
            issue.url,
            details,
            issue.created_at,
            issue.updated_at,
        )

    def map_issue(self, issue: Issue) -> CalendarEventDraft:
        start = self.issue_start(issue)
        return CalendarEventDraft(
            summary=f"[{issue.repository.name}] {issue.title}",
            description=self.issue_description(issue),
            start=start,
            end=start.default_end(),
            idempotency_key=issue.id,
            source_url=issue.url,
            source_label=issue.repository.full_name,
            color_id=determine_color(issue.labels),
            reminders=self.reminders,
        )

    # Project items

    @staticmethod
    def project_item_start(item: ProjectItem) -> EventTime:
        """Meeting Date, then Target Date (all-day); else content update time (timed, UTC)."""
        for field_name in (MEETING_DATE_FIELD, TARGET_DATE_FIELD):
            day = item.date_field(field_name)
            if day is not None:
                logger.debug(f"Using {field_name} {day} for project item {item.id}")
                return EventTime.all_day(day)
        return EventTime.timed(item.content.updated_at)

    @staticmethod
    def project_item_description(item: ProjectItem) -> str:
        content = item.content
        details = _people_and_labels(content.assignees, content.labels)
        status = item.field_text("Status")
        if status:
            details.append(f"Status: {status}")
        priority = item.field_text("Priority")
        if priority:
            details.append(f"Priority: {priority}")
        return _compose(
            f"{_TYPE_NAMES[item.type]} from project: {item.project.title}",
            content.body,
            content.url,
            details,
            content.created_at,
            content.updated_at,
        )

    def map_project_item(self, item: ProjectItem) -> CalendarEventDraft:
        if item.content is None:
            raise ValueError(f"Project item {item.id} has no content")
        start = self.project_item_start(item)
        return CalendarEventDraft(
            summary=f"{_TYPE_GLYPHS[item.type]} [{item.project.title}] {item.content.title}",
            description=self.project_item_description(item),
            start=start,
            end=start.default_end(),
            idempotency_key=item.id,
            source_url=item.content.url,
            source_label=item.project.title,
            color_id=determine_color(item.content.labels),
            reminders=self.reminders,
        )

"""Canonical work-item shapes produced by the normalizer.

Issues come from repository/organization scopes. Project items come from a
project board and are a tagged union over their content variant: issues and
pull requests carry a number and a canonical URL, draft issues do not.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Tuple, Union

MEETING_DATE_FIELD = "Meeting Date"
TARGET_DATE_FIELD = "Target Date"


@dataclass(frozen=True)
class Label:
    name: str
    color: str = ""


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Milestone:
    title: str
    due_on: Optional[date] = None


@dataclass(frozen=True)
class Issue:
    """A repository issue. `id` is the GraphQL node id (dedup + idempotency key)."""

    id: str
    number: int
    title: str
    body: str
    url: str
    state: str
    repository: Repository
    author: str
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    assignees: Tuple[str, ...] = ()
    labels: Tuple[Label, ...] = ()
    milestone: Optional[Milestone] = None


# Project field values ------------------------------------------------------


@dataclass(frozen=True)
class DateFieldValue:
    value: date


@dataclass(frozen=True)
class TextFieldValue:
    value: str


@dataclass(frozen=True)
class SelectFieldValue:
    value: str


FieldValue = Union[DateFieldValue, TextFieldValue, SelectFieldValue]


# Project items -------------------------------------------------------------


class ProjectItemType(str, enum.Enum):
    ISSUE = "ISSUE"
    PULL_REQUEST = "PULL_REQUEST"
    DRAFT_ISSUE = "DRAFT_ISSUE"


@dataclass(frozen=True)
class ProjectRef:
    id: str
    title: str
    number: int


@dataclass(frozen=True)
class LinkedContent:
    """Content of an ISSUE or PULL_REQUEST project item."""

    id: str
    number: int
    title: str
    body: str
    url: str
    state: str
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    assignees: Tuple[str, ...] = ()
    labels: Tuple[Label, ...] = ()


@dataclass(frozen=True)
class DraftContent:
    """Content of a DRAFT_ISSUE project item (no number, no canonical URL)."""

    id: str
    title: str
    body: str
    url: str
    created_at: datetime
    updated_at: datetime
    assignees: Tuple[str, ...] = ()
    state: str = "open"

    @property
    def labels(self) -> Tuple[Label, ...]:
        return ()


ItemContent = Union[LinkedContent, DraftContent]


@dataclass(frozen=True)
class ProjectItem:
    id: str
    type: ProjectItemType
    project: ProjectRef
    field_values: Dict[str, FieldValue] = field(default_factory=dict)
    content: Optional[ItemContent] = None

    @property
    def labels(self) -> Tuple[Label, ...]:
        return self.content.labels if self.content is not None else ()

    @property
    def assignees(self) -> Tuple[str, ...]:
        return self.content.assignees if self.content is not None else ()

    def field_value(self, name: str) -> Optional[FieldValue]:
        """Value of field `name`, matching the field name case-insensitively."""
        value = self.field_values.get(name)
        if value is not None:
            return value
        key = name.casefold()
        for field_name, candidate in self.field_values.items():
            if field_name.casefold() == key:
                return candidate
        return None

    def field_text(self, name: str) -> Optional[str]:
        """Field value rendered as text"""
        value = self.field_value(name)
        if value is None:
            return None
        if isinstance(value, DateFieldValue):
            return value.value.isoformat()
        return value.value

    def date_field(self, name: str) -> Optional[date]:
        """Date stored under `name`; text values are accepted when ISO formatted."""
        value = self.field_value(name)
        if isinstance(value, DateFieldValue):
            return value.value
        if isinstance(value, TextFieldValue):
            try:
                return date.fromisoformat(value.value.strip()[:10])
            except ValueError:
                return None
        return None


WorkItem = Union[Issue, ProjectItem]

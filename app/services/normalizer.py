"""Convert raw GraphQL records into canonical Issue / ProjectItem values"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

from app.services.github_client import RawRecord
from app.services.items import (
    DateFieldValue,
    DraftContent,
    FieldValue,
    Issue,
    Label,
    LinkedContent,
    Milestone,
    ProjectItem,
    ProjectItemType,
    ProjectRef,
    Repository,
    SelectFieldValue,
    TextFieldValue,
)


def parse_github_datetime(value: str) -> datetime:
    """Parse GitHub ISO8601 timestamps into tz-aware UTC datetimes."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_github_date(value: str) -> date:
    """Parse a date-only value or a timestamp (reduced to its UTC calendar day)."""
    if len(value) == 10:
        return date.fromisoformat(value)
    return parse_github_datetime(value).date()


def _optional_datetime(value: Optional[str]) -> Optional[datetime]:
    return parse_github_datetime(value) if value else None


def _nodes(connection: Any) -> list:
    if not connection:
        return []
    return connection.get("nodes") or []


def _logins(connection: Any) -> Tuple[str, ...]:
    return tuple(n["login"] for n in _nodes(connection) if n and n.get("login"))


def _labels(connection: Any) -> Tuple[Label, ...]:
    return tuple(
        Label(name=n["name"], color=n.get("color") or "")
        for n in _nodes(connection)
        if n and n.get("name")
    )


def normalize_issue(record: RawRecord) -> Issue:
    """Build an Issue from a raw issue node and its repository parent"""
    node = record.node
    repository = Repository(owner=record.parent["owner"], name=record.parent["name"])
    milestone = None
    if node.get("milestone"):
        due_on = node["milestone"].get("dueOn")
        milestone = Milestone(
            title=node["milestone"]["title"],
            due_on=parse_github_date(due_on) if due_on else None,
        )
    return Issue(
        id=node["id"],
        number=int(node["number"]),
        title=node["title"],
        body=node.get("body") or "",
        url=node["url"],
        state=str(node.get("state") or "OPEN").lower(),
        repository=repository,
        author=(node.get("author") or {}).get("login") or "unknown",
        created_at=parse_github_datetime(node["createdAt"]),
        updated_at=parse_github_datetime(node["updatedAt"]),
        closed_at=_optional_datetime(node.get("closedAt")),
        assignees=_logins(node.get("assignees")),
        labels=_labels(node.get("labels")),
        milestone=milestone,
    )


def extract_field_values(raw_field_values: Any) -> Dict[str, FieldValue]:
    """Map field name -> first populated of (date, text, single-select name).

    Later nodes for the same field name overwrite earlier ones.
    """
    values: Dict[str, FieldValue] = {}
    for node in _nodes(raw_field_values):
        if not node:
            continue
        field_name = (node.get("field") or {}).get("name")
        if not field_name:
            continue
        if node.get("date"):
            values[field_name] = DateFieldValue(parse_github_date(node["date"]))
        elif node.get("text"):
            values[field_name] = TextFieldValue(node["text"])
        elif node.get("name"):
            values[field_name] = SelectFieldValue(node["name"])
    return values


def draft_url(project: ProjectRef) -> str:
    """Drafts have no canonical URL; point at the owning project instead."""
    return f"https://github.com/users/{quote(project.title, safe='')}/projects/{project.number}"


def normalize_project_item(record: RawRecord) -> ProjectItem:
    """Build a ProjectItem from a raw item node and its project parent"""
    node = record.node
    project = ProjectRef(
        id=record.parent["id"],
        title=record.parent.get("title") or "",
        number=int(record.parent.get("number") or 0),
    )
    try:
        item_type = ProjectItemType(node["type"])
    except ValueError:
        raise ValueError(f"Unsupported project item type {node.get('type')!r} for item {node.get('id')}")

    raw = node.get("content")
    content = None
    if raw:
        if item_type is ProjectItemType.DRAFT_ISSUE:
            content = DraftContent(
                id=raw["id"],
                title=raw["title"],
                body=raw.get("body") or "",
                url=draft_url(project),
                created_at=parse_github_datetime(raw["createdAt"]),
                updated_at=parse_github_datetime(raw["updatedAt"]),
                assignees=_logins(raw.get("assignees")),
            )
        else:
            content = LinkedContent(
                id=raw["id"],
                number=int(raw["number"]),
                title=raw["title"],
                body=raw.get("body") or "",
                url=raw["url"],
                state=str(raw.get("state") or "OPEN").lower(),
                created_at=parse_github_datetime(raw["createdAt"]),
                updated_at=parse_github_datetime(raw["updatedAt"]),
                closed_at=_optional_datetime(raw.get("closedAt")),
                assignees=_logins(raw.get("assignees")),
                labels=_labels(raw.get("labels")),
            )

    return ProjectItem(
        id=node["id"],
        type=item_type,
        project=project,
        field_values=extract_field_values(node.get("fieldValues")),
        content=content,
    )

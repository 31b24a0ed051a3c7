"""Deduplication and inclusion filters for fetched work items"""

from typing import Iterable, List, Sequence, TypeVar

from app.services.items import WorkItem

T = TypeVar("T", bound=WorkItem)


def dedupe(items: Iterable[T]) -> List[T]:
    """Drop repeated ids, keeping the first occurrence and the original order.

    The same issue can be reached through an organization and an explicit
    repository scope in one fetch.
    """
    seen = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def apply_filters(
    items: Iterable[T],
    label_allowlist: Sequence[str] = (),
    assignee_allowlist: Sequence[str] = (),
) -> List[T]:
    """Keep items matching every configured axis.

    An empty allowlist places no restriction on its axis. Label names and
    assignee logins are compared exactly.
    """
    labels = set(label_allowlist)
    assignees = set(assignee_allowlist)
    filtered = list(items)

    if labels:
        filtered = [i for i in filtered if any(label.name in labels for label in i.labels)]

    if assignees:
        filtered = [i for i in filtered if any(login in assignees for login in i.assignees)]

    return filtered

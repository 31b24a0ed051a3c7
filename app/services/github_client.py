"""GitHub GraphQL API client wrapper"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import requests

from app.exceptions import ConfigurationError, GitHubAPIError
from app.services.retry import TRANSIENT_STATUS_CODES, with_retries

logger = logging.getLogger(__name__)

_ISSUE_FIELDS = """
  id
  number
  title
  body
  url
  state
  createdAt
  updatedAt
  closedAt
  author { login }
  assignees(first: 10) { nodes { login } }
  labels(first: 10) { nodes { name color } }
  milestone { title dueOn }
"""

ORGANIZATION_ISSUES_QUERY = (
    """
query($login: String!, $cursor: String) {
  organization(login: $login) {
    repositories(first: 100, after: $cursor) {
      pageInfo { hasNextPage endCursor }
      nodes {
        name
        owner { login }
        issues(first: 100, states: OPEN, orderBy: {field: UPDATED_AT, direction: DESC}) {
          pageInfo { hasNextPage endCursor }
          nodes {"""
    + _ISSUE_FIELDS
    + """}
        }
      }
    }
  }
}
"""
)

REPOSITORY_ISSUES_QUERY = (
    """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    name
    owner { login }
    issues(first: 100, states: OPEN, orderBy: {field: UPDATED_AT, direction: DESC}, after: $cursor) {
      pageInfo { hasNextPage endCursor }
      nodes {"""
    + _ISSUE_FIELDS
    + """}
    }
  }
}
"""
)

_LINKED_CONTENT_FIELDS = """
  id
  number
  title
  body
  url
  state
  createdAt
  updatedAt
  closedAt
  assignees(first: 10) { nodes { login } }
  labels(first: 10) { nodes { name color } }
"""

PROJECT_ITEMS_QUERY = (
    """
query($projectId: ID!, $cursor: String) {
  node(id: $projectId) {
    ... on ProjectV2 {
      id
      title
      number
      items(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          id
          type
          fieldValues(first: 20) {
            nodes {
              ... on ProjectV2ItemFieldDateValue {
                field { ... on ProjectV2Field { name } }
                date
              }
              ... on ProjectV2ItemFieldTextValue {
                field { ... on ProjectV2Field { name } }
                text
              }
              ... on ProjectV2ItemFieldSingleSelectValue {
                field { ... on ProjectV2SingleSelectField { name } }
                name
              }
            }
          }
          content {
            ... on Issue {"""
    + _LINKED_CONTENT_FIELDS
    + """}
            ... on PullRequest {"""
    + _LINKED_CONTENT_FIELDS
    + """}
            ... on DraftIssue {
              id
              title
              body
              createdAt
              updatedAt
              assignees(first: 10) { nodes { login } }
            }
          }
        }
      }
    }
  }
}
"""
)

_PROJECT_FIELDS = """
  pageInfo { hasNextPage endCursor }
  nodes {
    id
    number
    title
    url
    shortDescription
    public
    closed
    owner {
      ... on User { login }
      ... on Organization { login }
    }
  }
"""

USER_PROJECTS_QUERY = (
    """
query($login: String!, $cursor: String) {
  user(login: $login) {
    projectsV2(first: 100, after: $cursor) {"""
    + _PROJECT_FIELDS
    + """}
  }
}
"""
)

ORGANIZATION_PROJECTS_QUERY = (
    """
query($login: String!, $cursor: String) {
  organization(login: $login) {
    projectsV2(first: 100, after: $cursor) {"""
    + _PROJECT_FIELDS
    + """}
  }
}
"""
)


class SourceKind(str, enum.Enum):
    """Paginated collections the client knows how to fetch"""

    ORGANIZATION_ISSUES = "organization_issues"
    REPOSITORY_ISSUES = "repository_issues"
    PROJECT_ITEMS = "project_items"
    USER_PROJECTS = "user_projects"
    ORGANIZATION_PROJECTS = "organization_projects"


@dataclass(frozen=True)
class OwnerScope:
    """An organization or user login."""

    login: str

    def __str__(self) -> str:
        return self.login


@dataclass(frozen=True)
class RepositoryScope:
    owner: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "RepositoryScope":
        """Parse "owner/name"; anything else is a format error."""
        parts = (value or "").strip().split("/")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ValueError(f"Invalid repository format: {value!r}. Expected: owner/repo")
        return cls(owner=parts[0].strip(), name=parts[1].strip())

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class ProjectScope:
    project_id: str

    def __str__(self) -> str:
        return self.project_id


Scope = Union[OwnerScope, RepositoryScope, ProjectScope]


@dataclass(frozen=True)
class RawRecord:
    """One raw GraphQL node plus the parent it was fetched under (repository or project)."""

    node: Dict[str, Any]
    parent: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Page:
    items: List[RawRecord]
    next_cursor: Optional[str]
    has_more: bool
    # Nested connections cut short on this page, to be drained separately.
    continuations: Tuple["Continuation", ...] = ()


@dataclass(frozen=True)
class Continuation:
    """Resume `kind` for `scope` after `cursor`."""

    kind: "SourceKind"
    scope: Scope
    cursor: str


Extracted = Tuple[List[RawRecord], Dict[str, Any], Tuple[Continuation, ...]]


def _page_info(connection: Dict[str, Any]) -> Tuple[Optional[str], bool]:
    info = connection.get("pageInfo") or {}
    return info.get("endCursor"), bool(info.get("hasNextPage"))


def _extract_organization_issues(data: Dict[str, Any]) -> Optional[Extracted]:
    org = data.get("organization")
    if not org:
        return None
    repos = org["repositories"]
    records = []
    continuations = []
    for repo in repos.get("nodes") or []:
        parent = {"owner": repo["owner"]["login"], "name": repo["name"]}
        issues = repo.get("issues") or {}
        for issue in issues.get("nodes") or []:
            records.append(RawRecord(node=issue, parent=parent))
        cursor, has_more = _page_info(issues)
        if has_more and cursor:
            continuations.append(
                Continuation(
                    SourceKind.REPOSITORY_ISSUES,
                    RepositoryScope(parent["owner"], parent["name"]),
                    cursor,
                )
            )
    return records, repos, tuple(continuations)


def _extract_repository_issues(data: Dict[str, Any]) -> Optional[Extracted]:
    repo = data.get("repository")
    if not repo:
        return None
    parent = {"owner": repo["owner"]["login"], "name": repo["name"]}
    issues = repo["issues"]
    return [RawRecord(node=n, parent=parent) for n in issues.get("nodes") or []], issues, ()


def _extract_project_items(data: Dict[str, Any]) -> Optional[Extracted]:
    node = data.get("node")
    if not node or not node.get("items"):
        return None
    parent = {"id": node.get("id"), "title": node.get("title"), "number": node.get("number")}
    items = node["items"]
    return [RawRecord(node=n, parent=parent) for n in items.get("nodes") or []], items, ()


def _projects_extractor(root_field: str) -> Callable[[Dict[str, Any]], Optional[Extracted]]:
    def _extract(data: Dict[str, Any]):
        owner = data.get(root_field)
        if not owner or not owner.get("projectsV2"):
            return None
        projects = owner["projectsV2"]
        return [RawRecord(node=n) for n in projects.get("nodes") or []], projects, ()

    return _extract


def _owner_vars(scope: Scope) -> Dict[str, Any]:
    if not isinstance(scope, OwnerScope):
        raise TypeError(f"Expected an owner scope, got {scope!r}")
    return {"login": scope.login}


def _repository_vars(scope: Scope) -> Dict[str, Any]:
    if not isinstance(scope, RepositoryScope):
        raise TypeError(f"Expected a repository scope, got {scope!r}")
    return {"owner": scope.owner, "name": scope.name}


def _project_vars(scope: Scope) -> Dict[str, Any]:
    if not isinstance(scope, ProjectScope):
        raise TypeError(f"Expected a project scope, got {scope!r}")
    return {"projectId": scope.project_id}


_COLLECTIONS = {
    SourceKind.ORGANIZATION_ISSUES: (ORGANIZATION_ISSUES_QUERY, _owner_vars, _extract_organization_issues),
    SourceKind.REPOSITORY_ISSUES: (REPOSITORY_ISSUES_QUERY, _repository_vars, _extract_repository_issues),
    SourceKind.PROJECT_ITEMS: (PROJECT_ITEMS_QUERY, _project_vars, _extract_project_items),
    SourceKind.USER_PROJECTS: (USER_PROJECTS_QUERY, _owner_vars, _projects_extractor("user")),
    SourceKind.ORGANIZATION_PROJECTS: (
        ORGANIZATION_PROJECTS_QUERY,
        _owner_vars,
        _projects_extractor("organization"),
    ),
}


class GitHubClient:
    """Wrapper for GitHub GraphQL operations"""

    def __init__(
        self,
        token: Optional[str],
        *,
        api_url: str = "https://api.github.com/graphql",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if not token:
            raise ConfigurationError("GITHUB_TOKEN is required")
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": "github-calendar-sync",
            }
        )

    @staticmethod
    def _should_retry(exc: Exception) -> bool:
        """Best-effort retry predicate for transient GitHub failures."""
        return getattr(exc, "status_code", None) in TRANSIENT_STATUS_CODES

    def _with_retries(self, fn, **kwargs):
        return with_retries(fn, self._should_retry, **kwargs)

    def _post(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(
            self.api_url,
            json={"query": query, "variables": variables},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise GitHubAPIError(
                f"GraphQL query failed with HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        payload = response.json()
        if payload.get("errors"):
            raise GitHubAPIError(f"GraphQL query returned errors: {payload['errors']}")
        return payload.get("data") or {}

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL query and return its `data` object"""
        return self._with_retries(lambda: self._post(query, variables))

    def fetch_collection(
        self, kind: SourceKind, scope: Scope, cursor: Optional[str] = None
    ) -> Page:
        """Fetch one page of a collection.

        A missing or inaccessible root object yields an empty final page.
        """
        query, build_vars, extract = _COLLECTIONS[kind]
        variables = build_vars(scope)
        variables["cursor"] = cursor
        extracted = extract(self.graphql(query, variables))
        if extracted is None:
            logger.warning(f"{kind.value}: {scope} not found or not accessible")
            return Page(items=[], next_cursor=None, has_more=False)
        records, connection, continuations = extracted
        next_cursor, has_more = _page_info(connection)
        return Page(
            items=records,
            next_cursor=next_cursor,
            has_more=has_more and bool(next_cursor),
            continuations=continuations,
        )

    def fetch_all(
        self, kind: SourceKind, scope: Scope, cursor: Optional[str] = None
    ) -> List[RawRecord]:
        """Drive `fetch_collection` to exhaustion, starting after `cursor`.

        Nested connections a page could not hold (issues of one repository in an
        organization page) are drained in turn. A remote error stops pagination
        for that scope; records gathered so far are returned.
        """
        records: List[RawRecord] = []
        while True:
            try:
                page = self.fetch_collection(kind, scope, cursor)
            except (requests.RequestException, GitHubAPIError, KeyError, TypeError, ValueError) as e:
                logger.error(
                    f"Failed to fetch {kind.value} for {scope} "
                    f"(keeping {len(records)} already fetched): {e}"
                )
                break
            records.extend(page.items)
            for continuation in page.continuations:
                logger.debug(f"Continuing {continuation.kind.value} for {continuation.scope}")
                records.extend(
                    self.fetch_all(continuation.kind, continuation.scope, continuation.cursor)
                )
            if not page.has_more:
                break
            cursor = page.next_cursor
        return records

    def fetch_user_projects(self, login: str) -> List[Dict[str, Any]]:
        """List open ProjectV2 boards owned by a user"""
        records = self.fetch_all(SourceKind.USER_PROJECTS, OwnerScope(login))
        projects = [r.node for r in records if not r.node.get("closed")]
        logger.info(f"Found {len(projects)} open projects for user {login}")
        return projects

    def fetch_organization_projects(self, login: str) -> List[Dict[str, Any]]:
        """List open ProjectV2 boards owned by an organization"""
        records = self.fetch_all(SourceKind.ORGANIZATION_PROJECTS, OwnerScope(login))
        projects = [r.node for r in records if not r.node.get("closed")]
        logger.info(f"Found {len(projects)} open projects for organization {login}")
        return projects

"""Issue/project to calendar synchronization service"""

import enum
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from app.services.event_mapper import CalendarEventDraft, EventMapper
from app.services.filters import apply_filters, dedupe
from app.services.github_client import (
    GitHubClient,
    OwnerScope,
    ProjectScope,
    RawRecord,
    RepositoryScope,
    SourceKind,
)
from app.services.items import WorkItem
from app.services.normalizer import normalize_issue, normalize_project_item
from app.services.reconciler import ReconciliationEngine, SyncStats, SyncStatus

logger = logging.getLogger(__name__)


class SyncState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"


class SyncGuard:
    """Single-flight guard: at most one sync run at a time, no queueing."""

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def state(self) -> SyncState:
        return SyncState.RUNNING if self._lock.locked() else SyncState.IDLE

    @contextmanager
    def acquire(self) -> Iterator[bool]:
        """Yield True if this caller now owns the run, False if one is in flight.

        Ownership is released on every exit path.
        """
        if not self._lock.acquire(blocking=False):
            yield False
            return
        try:
            yield True
        finally:
            self._lock.release()


class SyncService:
    """Runs issue, project and full syncs against the calendar"""

    def __init__(
        self,
        github: GitHubClient,
        calendar,
        *,
        mapper: Optional[EventMapper] = None,
        selection_reader: Optional[Callable[[], List[str]]] = None,
        organizations: Sequence[str] = (),
        repositories: Sequence[str] = (),
        label_allowlist: Sequence[str] = (),
        assignee_allowlist: Sequence[str] = (),
    ):
        self.github = github
        self.calendar = calendar
        self.mapper = mapper or EventMapper()
        self.engine = ReconciliationEngine(calendar)
        self.selection_reader = selection_reader or (lambda: [])
        self.organizations = list(organizations)
        self.repositories = list(repositories)
        self.label_allowlist = list(label_allowlist)
        self.assignee_allowlist = list(assignee_allowlist)

        self.guard = SyncGuard()
        self.last_sync_time: Optional[datetime] = None
        self.last_sync_stats: Optional[SyncStats] = None
        self.last_run_kind: Optional[str] = None

        logger.info(
            f"Configured to track: organizations={', '.join(self.organizations) or 'none'} "
            f"repositories={', '.join(self.repositories) or 'none'} "
            f"labels={', '.join(self.label_allowlist) or 'all'} "
            f"assignees={', '.join(self.assignee_allowlist) or 'all'}"
        )

    @property
    def state(self) -> SyncState:
        return self.guard.state

    # Public operations

    def sync_issues(self) -> Dict[str, Any]:
        """Fetch, filter, map and reconcile repository issues"""
        logger.info("Issue sync triggered")
        return self._run("issues", self._sync_issues)

    def sync_projects(self) -> Dict[str, Any]:
        """Fetch, map and reconcile items of the selected projects"""
        logger.info("Project sync triggered")
        return self._run("projects", self._sync_projects)

    def full_sync(self) -> Dict[str, Any]:
        """Issue sync followed by project sync; each is guarded separately."""
        logger.info("Full sync triggered (issues + projects)")
        issues_result = self.sync_issues()
        projects_result = self.sync_projects()

        statuses = {issues_result["status"], projects_result["status"]}
        if SyncStatus.ERROR.value in statuses:
            status = SyncStatus.ERROR
        elif statuses == {SyncStatus.SKIPPED.value}:
            status = SyncStatus.SKIPPED
        else:
            status = SyncStatus.SUCCESS
        return {"status": status.value, "issues": issues_result, "projects": projects_result}

    def get_status(self) -> Dict[str, Any]:
        """Advisory snapshot; may show the previous run while a new one is in flight."""
        state = self.guard.state
        return {
            "state": state.value,
            "sync_in_progress": state is SyncState.RUNNING,
            "last_sync_time": self.last_sync_time,
            "last_run_kind": self.last_run_kind,
            "last_sync_stats": self.last_sync_stats.as_dict() if self.last_sync_stats else None,
            "is_authenticated": self.calendar.is_authenticated(),
        }

    # Run lifecycle

    @staticmethod
    def _skipped() -> Dict[str, Any]:
        logger.warning("Sync already in progress, skipping...")
        return {"status": SyncStatus.SKIPPED.value, "reason": "Sync already in progress"}

    def _run(self, kind: str, body: Callable[[SyncStats], Optional[str]]) -> Dict[str, Any]:
        if self.guard.state is SyncState.RUNNING:
            return self._skipped()

        if not self.calendar.is_authenticated():
            logger.error("Not authenticated with Google Calendar. Please authorize first.")
            return {
                "status": SyncStatus.ERROR.value,
                "reason": "Not authenticated with Google Calendar",
                "auth_url": self.calendar.get_auth_url(),
            }

        with self.guard.acquire() as acquired:
            if not acquired:
                return self._skipped()

            stats = SyncStats()
            started = time.monotonic()
            try:
                message = body(stats)
            except Exception as e:
                stats.duration_ms = int((time.monotonic() - started) * 1000)
                logger.error(f"{kind.capitalize()} sync failed: {e}")
                return {"status": SyncStatus.ERROR.value, "reason": str(e), **stats.as_dict()}

            completed_at = datetime.now(timezone.utc)
            stats.duration_ms = int((time.monotonic() - started) * 1000)
            self.last_sync_time = completed_at
            self.last_sync_stats = replace(stats)
            self.last_run_kind = kind

            logger.info(f"{kind.capitalize()} sync completed: {stats.as_dict()}")
            result = {"status": SyncStatus.SUCCESS.value, **stats.as_dict(), "completed_at": completed_at}
            if message:
                result["message"] = message
            return result

    # Run bodies

    def _normalize(
        self,
        records: Iterable[RawRecord],
        normalize: Callable[[RawRecord], WorkItem],
        stats: SyncStats,
    ) -> List[WorkItem]:
        items = []
        for record in records:
            try:
                items.append(normalize(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Failed to read record {record.node.get('id')}: {e}")
                stats.errors += 1
        return items

    def _map(self, items: Iterable[WorkItem], stats: SyncStats) -> List[CalendarEventDraft]:
        drafts = []
        for item in items:
            try:
                drafts.append(self.mapper.map(item))
            except Exception as e:
                logger.error(f"Failed to map item {item.id}: {e}")
                stats.errors += 1
        return drafts

    def fetch_issue_records(self) -> List[RawRecord]:
        """Raw issue records from every configured organization and repository"""
        records: List[RawRecord] = []
        for org in self.organizations:
            logger.info(f"Fetching issues from organization: {org}")
            records.extend(self.github.fetch_all(SourceKind.ORGANIZATION_ISSUES, OwnerScope(org)))
        for repo in self.repositories:
            try:
                scope = RepositoryScope.parse(repo)
            except ValueError as e:
                logger.warning(str(e))
                continue
            logger.info(f"Fetching issues from repository: {scope}")
            records.extend(self.github.fetch_all(SourceKind.REPOSITORY_ISSUES, scope))
        return records

    def _sync_issues(self, stats: SyncStats) -> Optional[str]:
        issues = self._normalize(self.fetch_issue_records(), normalize_issue, stats)
        unique = dedupe(issues)
        filtered = apply_filters(unique, self.label_allowlist, self.assignee_allowlist)
        logger.info(
            f"Total issues fetched: {len(issues)}, unique: {len(unique)}, "
            f"after filters: {len(filtered)}"
        )
        stats.total_items = len(filtered)
        self.engine.reconcile_all(self._map(filtered, stats), stats)
        return None

    def _sync_projects(self, stats: SyncStats) -> Optional[str]:
        project_ids = self.selection_reader()
        if not project_ids:
            logger.warning("No projects selected for syncing")
            return "No projects selected."

        logger.info(f"Fetching items from {len(project_ids)} selected projects")
        records: List[RawRecord] = []
        for project_id in project_ids:
            records.extend(self.github.fetch_all(SourceKind.PROJECT_ITEMS, ProjectScope(project_id)))

        items = dedupe(self._normalize(records, normalize_project_item, stats))
        logger.info(f"Found {len(items)} project items to sync")
        stats.total_items = len(items)
        self.engine.reconcile_all(self._map(items, stats), stats)
        return None

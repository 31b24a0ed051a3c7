"""Project discovery and persisted project/task selections"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import ConfigurationError
from app.models import ProjectSelection
from app.models.project_selection import utcnow
from app.services.github_client import GitHubClient, ProjectScope, SourceKind
from app.services.normalizer import normalize_project_item

logger = logging.getLogger(__name__)


def _as_dict(selection: ProjectSelection) -> Dict[str, Any]:
    return {
        "username": selection.username,
        "project_ids": list(selection.project_ids or []),
        "selected_tasks": dict(selection.selected_tasks or {}),
        "updated_at": selection.updated_at,
    }


class ProjectSelectionService:
    """Reads and rewrites ProjectSelection rows.

    Each mutation replaces the whole row for the user; nothing is appended in place.
    """

    def __init__(self, db: Session, github: Optional[GitHubClient] = None):
        self.db = db
        self.github = github

    def _require_github(self) -> GitHubClient:
        if self.github is None:
            raise ConfigurationError("GitHub client is not configured")
        return self.github

    def _find(self, username: str) -> Optional[ProjectSelection]:
        return (
            self.db.query(ProjectSelection)
            .filter(ProjectSelection.username == username)
            .first()
        )

    def list_projects(self, username: str) -> Dict[str, Any]:
        """List open projects owned by `username` (as a user, then as an organization)"""
        github = self._require_github()
        logger.info(f"Listing projects for: {username}")
        projects = github.fetch_user_projects(username)
        if not projects:
            projects = github.fetch_organization_projects(username)
        return {"username": username, "projects": projects, "count": len(projects)}

    def save_selected_projects(self, username: str, project_ids: List[str]) -> Dict[str, Any]:
        """Replace the user's tracked project set"""
        # Keep order, drop repeats.
        project_ids = list(dict.fromkeys(p for p in project_ids if p))
        selection = self._find(username)
        if selection is None:
            selection = ProjectSelection(username=username)
            self.db.add(selection)
        selection.project_ids = project_ids
        selection.updated_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(selection)
        logger.info(f"Saved {len(project_ids)} projects for {username}")
        return _as_dict(selection)

    def get_selected_projects(self, username: str) -> Dict[str, Any]:
        selection = self._find(username)
        if selection is None:
            return {"username": username, "project_ids": [], "selected_tasks": {}, "updated_at": None}
        return _as_dict(selection)

    def get_all_selected_project_ids(self) -> List[str]:
        """Union of tracked project ids across users, first-seen order.

        A missing or unreadable store means nothing is selected.
        """
        try:
            selections = self.db.query(ProjectSelection).order_by(ProjectSelection.id).all()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load project selections, treating as empty: {e}")
            return []
        project_ids: Dict[str, None] = {}
        for selection in selections:
            for project_id in selection.project_ids or []:
                project_ids.setdefault(project_id, None)
        return list(project_ids)

    def get_project_tasks(self, project_id: str) -> Dict[str, Any]:
        """Items of one project, summarized for selection"""
        github = self._require_github()
        records = github.fetch_all(SourceKind.PROJECT_ITEMS, ProjectScope(project_id))
        tasks = []
        for record in records:
            try:
                item = normalize_project_item(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable item in project {project_id}: {e}")
                continue
            content = item.content
            tasks.append(
                {
                    "id": item.id,
                    "title": content.title if content else "Untitled",
                    "type": item.type.value,
                    "state": content.state if content else None,
                    "assignees": list(item.assignees),
                    "labels": [{"name": l.name, "color": l.color} for l in item.labels],
                    "updated_at": content.updated_at if content else None,
                    "url": content.url if content else None,
                }
            )
        return {"project_id": project_id, "tasks": tasks, "count": len(tasks)}

    def save_selected_tasks(
        self, username: str, project_id: str, task_ids: List[str]
    ) -> Dict[str, Any]:
        """Replace the task subset stored for one of the user's projects"""
        selection = self._find(username)
        if selection is None:
            selection = ProjectSelection(username=username, project_ids=[])
            self.db.add(selection)
        tasks = dict(selection.selected_tasks or {})
        tasks[project_id] = list(task_ids)
        selection.selected_tasks = tasks
        selection.updated_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        logger.info(f"Saved {len(task_ids)} tasks for project {project_id}")
        return {"username": username, "project_id": project_id, "task_ids": list(task_ids)}

    def get_selected_tasks_for_project(self, username: str, project_id: str) -> Optional[List[str]]:
        """Selected task ids, or None meaning "all tasks"."""
        selection = self._find(username)
        if selection is None or not selection.selected_tasks:
            return None
        task_ids = selection.selected_tasks.get(project_id)
        return list(task_ids) if task_ids is not None else None

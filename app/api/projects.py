"""Project discovery and selection endpoints"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.dependencies import get_github_client
from app.models.base import get_db
from app.services.github_client import GitHubClient
from app.services.selection_service import ProjectSelectionService

router = APIRouter(prefix="/api/projects", tags=["projects"])


class ProjectSelectionUpdate(BaseModel):
    username: str
    project_ids: List[str]


class TaskSelectionUpdate(BaseModel):
    username: str
    task_ids: List[str]


def get_selection_service(
    db: Session = Depends(get_db), github: GitHubClient = Depends(get_github_client)
) -> ProjectSelectionService:
    return ProjectSelectionService(db, github)


@router.get("/owners/{username}")
def list_projects(
    username: str, service: ProjectSelectionService = Depends(get_selection_service)
):
    """List open projects for a user or organization"""
    return service.list_projects(username)


@router.get("/selections/{username}")
def get_selected_projects(
    username: str, service: ProjectSelectionService = Depends(get_selection_service)
):
    """Get the projects a user tracks"""
    return service.get_selected_projects(username)


@router.post("/selections")
def save_selected_projects(
    update: ProjectSelectionUpdate,
    service: ProjectSelectionService = Depends(get_selection_service),
):
    """Replace the projects a user tracks"""
    try:
        return service.save_selected_projects(update.username, update.project_ids)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{project_id}/tasks")
def get_project_tasks(
    project_id: str, service: ProjectSelectionService = Depends(get_selection_service)
):
    """List the items of a project"""
    return service.get_project_tasks(project_id)


@router.get("/{project_id}/tasks/selection/{username}")
def get_selected_tasks(
    project_id: str,
    username: str,
    service: ProjectSelectionService = Depends(get_selection_service),
):
    """Selected task ids for a project (null means all tasks)"""
    return {
        "username": username,
        "project_id": project_id,
        "task_ids": service.get_selected_tasks_for_project(username, project_id),
    }


@router.post("/{project_id}/tasks/selection")
def save_selected_tasks(
    project_id: str,
    update: TaskSelectionUpdate,
    service: ProjectSelectionService = Depends(get_selection_service),
):
    """Replace the selected task ids for a project"""
    try:
        return service.save_selected_tasks(update.username, project_id, update.task_ids)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=str(e))

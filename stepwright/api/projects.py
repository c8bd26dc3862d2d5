import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stepwright.db.deps import get_db
from stepwright.core.dependencies import get_current_user, get_owned_project
from stepwright.models.user import User
from stepwright.models.project import Project
from stepwright.schemas.project import ProjectCreate, ProjectResponse
from stepwright.services.version_recorder import VersionRecorder, get_version_recorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"],
    dependencies=[Depends(get_current_user)])

@router.post("/", response_model=ProjectResponse)
def create_project(
    project: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    new_project = Project(
        name=project.name,
        url=project.url,
        playwright_project_path=project.playwright_project_path,
        user_id=current_user.id
    )
    db.add(new_project)
    db.commit()
    db.refresh(new_project)
    return new_project

@router.get("/", response_model=list[ProjectResponse])
def list_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    projects = db.query(Project).filter(Project.user_id == current_user.id).all()
    return projects

@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_owned_project(project_id, db, current_user)

@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    project = get_owned_project(project_id, db, current_user)

    # Last snapshot of every test case; version rows outlive the project
    for test_case in list(project.test_cases):
        recorder.record_version(db, test_case, user_id=current_user.id, force=True)

    db.delete(project)
    db.commit()

    logger.info("Deleted project %s", project_id)
    return {"status": "success", "message": f"Project {project_id} deleted"}

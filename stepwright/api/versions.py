from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stepwright.db.deps import get_db
from stepwright.core.dependencies import get_current_user, get_owned_project
from stepwright.models.user import User
from stepwright.schemas.test_case import TestCaseResponse
from stepwright.schemas.version import VersionResponse, StepVersionResponse, VersionDetail, RestoreRequest
from stepwright.services.step_service import get_test_case
from stepwright.services.version_recorder import get_version, list_versions, restore_version

router = APIRouter(prefix="/projects/{project_id}/test-cases/{test_case_id}/versions", tags=["Versions"],
    dependencies=[Depends(get_current_user)])

@router.get("/", response_model=list[VersionResponse])
def read_versions(
    project_id: int,
    test_case_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    get_test_case(db, project_id, test_case_id)
    return list_versions(db, test_case_id)

@router.post("/restore", response_model=TestCaseResponse)
def restore(
    project_id: int,
    test_case_id: int,
    body: RestoreRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    get_test_case(db, project_id, test_case_id)
    return restore_version(db, test_case_id, body.version_id, user_id=current_user.id)

@router.get("/{version_id}", response_model=VersionDetail)
def read_version(
    project_id: int,
    test_case_id: int,
    version_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    get_test_case(db, project_id, test_case_id)

    version = get_version(db, test_case_id, version_id)
    return VersionDetail(
        version=VersionResponse.model_validate(version),
        steps=[StepVersionResponse.model_validate(step) for step in version.steps]
    )

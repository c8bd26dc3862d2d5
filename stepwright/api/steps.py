from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stepwright.db.deps import get_db
from stepwright.core.dependencies import get_current_user, get_owned_project, get_code_generator
from stepwright.models.user import User
from stepwright.schemas.test_step import (
    StepCreate,
    StepFromCode,
    StepUpdate,
    StepPatch,
    StepReorder,
    StepBulkDelete,
    StepBulkCreate,
    StepClone,
    StepResponse,
)
from stepwright.services import step_service
from stepwright.services.code_generator import CodeGenerator
from stepwright.services.version_recorder import VersionRecorder, get_version_recorder

router = APIRouter(prefix="/projects/{project_id}/test-cases/{test_case_id}/steps", tags=["Test Steps"],
    dependencies=[Depends(get_current_user)])

def _owned_test_case(project_id, test_case_id, db, current_user):
    get_owned_project(project_id, db, current_user)
    return step_service.get_test_case(db, project_id, test_case_id)

@router.get("/", response_model=list[StepResponse])
def list_steps(
    project_id: int,
    test_case_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.list_steps(db, test.id)

@router.post("/", response_model=StepResponse)
def create_step(
    project_id: int,
    test_case_id: int,
    step: StepCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: CodeGenerator = Depends(get_code_generator),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.create_step(db, test, step, generator, recorder, user_id=current_user.id)

@router.post("/from-code", response_model=list[StepResponse])
def create_steps_from_code(
    project_id: int,
    test_case_id: int,
    body: StepFromCode,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: CodeGenerator = Depends(get_code_generator),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.create_steps_from_code(
        db, test, body.playwright_code, generator, recorder,
        user_id=current_user.id, fixture_id=body.fixture_id
    )

@router.post("/reorder", response_model=list[StepResponse])
def reorder_steps(
    project_id: int,
    test_case_id: int,
    body: StepReorder,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.reorder_steps(db, test, body.steps, recorder, user_id=current_user.id)

@router.post("/bulk-delete")
def bulk_delete_steps(
    project_id: int,
    test_case_id: int,
    body: StepBulkDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    deleted = step_service.bulk_delete_steps(db, test, body.step_ids, recorder, user_id=current_user.id)
    return {"status": "success", "deleted": deleted}

@router.post("/bulk", response_model=list[StepResponse])
def save_steps(
    project_id: int,
    test_case_id: int,
    body: StepBulkCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.replace_steps(db, test, body.steps, recorder, user_id=current_user.id)

@router.post("/clone", response_model=StepResponse)
def clone_step(
    project_id: int,
    test_case_id: int,
    body: StepClone,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.clone_step(db, test, body.source_step_id, recorder, user_id=current_user.id)

@router.get("/{step_id}", response_model=StepResponse)
def read_step(
    project_id: int,
    test_case_id: int,
    step_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.get_step(db, test.id, step_id)

@router.put("/{step_id}", response_model=StepResponse)
def update_step(
    project_id: int,
    test_case_id: int,
    step_id: int,
    step: StepUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: CodeGenerator = Depends(get_code_generator),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.update_step(db, test, step_id, step, generator, recorder, user_id=current_user.id)

@router.patch("/{step_id}", response_model=StepResponse)
def patch_step(
    project_id: int,
    test_case_id: int,
    step_id: int,
    step: StepPatch,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    return step_service.patch_step(db, test, step_id, step, recorder, user_id=current_user.id)

@router.delete("/{step_id}", status_code=204)
def delete_step(
    project_id: int,
    test_case_id: int,
    step_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    test = _owned_test_case(project_id, test_case_id, db, current_user)
    step_service.delete_step(db, test, step_id, recorder, user_id=current_user.id)

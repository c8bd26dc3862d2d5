import json

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stepwright.db.deps import get_db
from stepwright.core.dependencies import get_current_user, get_owned_project, get_code_generator
from stepwright.core.errors import FixtureNotFoundError
from stepwright.models.user import User
from stepwright.models.fixture import Fixture
from stepwright.models.test_step import TestStep
from stepwright.models.version import TestStepVersion
from stepwright.schemas.fixture import FixtureCreate, FixtureResponse, FixtureCloneResponse
from stepwright.schemas.test_step import StepCreate, StepResponse, StepBulkDelete
from stepwright.services import step_service
from stepwright.services.code_generator import CodeGenerator
from stepwright.services.fixtures import derive_content

router = APIRouter(prefix="/projects/{project_id}/fixtures", tags=["Fixtures"],
    dependencies=[Depends(get_current_user)])

def _get_fixture(db: Session, project_id: int, fixture_id: int) -> Fixture:
    fixture = db.query(Fixture).filter(
        Fixture.id == fixture_id,
        Fixture.project_id == project_id
    ).first()
    if not fixture:
        raise FixtureNotFoundError(fixture_id)
    return fixture

@router.post("/", response_model=FixtureResponse)
def create_fixture(
    project_id: int,
    fixture: FixtureCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)

    # Missing keys fall back to values derived from the fixture name
    content = {**derive_content(fixture.name), **(fixture.content or {})}

    new_fixture = Fixture(
        project_id=project_id,
        name=fixture.name,
        type=fixture.type,
        description=fixture.description,
        content=json.dumps(content)
    )
    db.add(new_fixture)
    db.commit()
    db.refresh(new_fixture)
    return new_fixture

@router.get("/", response_model=list[FixtureResponse])
def list_fixtures(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    return db.query(Fixture).filter(Fixture.project_id == project_id).order_by(Fixture.id.asc()).all()

@router.get("/{fixture_id}", response_model=FixtureResponse)
def read_fixture(
    project_id: int,
    fixture_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    return _get_fixture(db, project_id, fixture_id)

@router.delete("/{fixture_id}", status_code=204)
def delete_fixture(
    project_id: int,
    fixture_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    fixture = _get_fixture(db, project_id, fixture_id)

    # Test steps that used the fixture become plain steps again
    db.query(TestStep).filter(TestStep.fixture_id == fixture.id).update(
        {TestStep.fixture_id: None}, synchronize_session=False
    )
    # Recorded versions drop it as well
    db.query(TestStepVersion).filter(TestStepVersion.fixture_id == fixture.id).update(
        {TestStepVersion.fixture_id: None}, synchronize_session=False
    )
    db.delete(fixture)
    db.commit()

@router.post("/{fixture_id}/clone", response_model=FixtureCloneResponse)
def clone_fixture(
    project_id: int,
    fixture_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    fixture = _get_fixture(db, project_id, fixture_id)
    clone = step_service.clone_fixture(db, fixture, user_id=current_user.id)
    return FixtureCloneResponse(
        success=True,
        message="Fixture cloned successfully",
        fixture=FixtureResponse.model_validate(clone)
    )

# --- Fixture steps ---

@router.get("/{fixture_id}/steps", response_model=list[StepResponse])
def list_fixture_steps(
    project_id: int,
    fixture_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    fixture = _get_fixture(db, project_id, fixture_id)
    return step_service.list_fixture_steps(db, fixture.id)

@router.post("/{fixture_id}/steps", response_model=StepResponse)
def create_fixture_step(
    project_id: int,
    fixture_id: int,
    step: StepCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: CodeGenerator = Depends(get_code_generator)
):
    get_owned_project(project_id, db, current_user)
    fixture = _get_fixture(db, project_id, fixture_id)
    return step_service.create_fixture_step(db, fixture, step, generator, user_id=current_user.id)

@router.post("/{fixture_id}/steps/bulk-delete")
def bulk_delete_fixture_steps(
    project_id: int,
    fixture_id: int,
    body: StepBulkDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    fixture = _get_fixture(db, project_id, fixture_id)
    deleted = step_service.bulk_delete_fixture_steps(db, fixture, body.step_ids)
    return {"status": "success", "deleted": deleted}

@router.delete("/{fixture_id}/steps/{step_id}", status_code=204)
def delete_fixture_step(
    project_id: int,
    fixture_id: int,
    step_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    get_owned_project(project_id, db, current_user)
    fixture = _get_fixture(db, project_id, fixture_id)
    step_service.delete_fixture_step(db, fixture, step_id)

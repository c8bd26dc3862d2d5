from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stepwright.db.deps import get_db
from stepwright.core.dependencies import get_current_user, get_owned_project, get_script_writer
from stepwright.models.user import User
from stepwright.schemas.consolidation import ConsolidateRequest, ConsolidateResponse, LiveScriptResponse
from stepwright.services.consolidation import consolidate_test_case, refresh_live_script
from stepwright.services.script_writer import ScriptWriter
from stepwright.services.step_service import get_test_case
from stepwright.services.version_recorder import VersionRecorder, get_version_recorder

router = APIRouter(prefix="/projects/{project_id}/test-cases/{test_case_id}", tags=["Playwright Scripts"],
    dependencies=[Depends(get_current_user)])

@router.post("/consolidate-steps", response_model=ConsolidateResponse)
def consolidate_steps(
    project_id: int,
    test_case_id: int,
    body: Optional[ConsolidateRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    writer: ScriptWriter = Depends(get_script_writer),
    recorder: VersionRecorder = Depends(get_version_recorder)
):
    get_owned_project(project_id, db, current_user)
    test = get_test_case(db, project_id, test_case_id)
    options = body or ConsolidateRequest()

    result = consolidate_test_case(
        db, test, writer, recorder,
        user_id=current_user.id,
        preserve_imports=options.preserve_imports
    )

    if result.no_active_steps:
        message = "Test case has no active steps, an empty test was generated"
    else:
        message = "Steps consolidated into a Playwright script"

    return ConsolidateResponse(
        playwright_script=result.script,
        file_path=result.file_path,
        no_active_steps=result.no_active_steps,
        message=message
    )

@router.post("/update-playwright", response_model=LiveScriptResponse)
def update_playwright(
    project_id: int,
    test_case_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    writer: ScriptWriter = Depends(get_script_writer)
):
    get_owned_project(project_id, db, current_user)
    test = get_test_case(db, project_id, test_case_id)

    result = refresh_live_script(db, test, writer)
    return LiveScriptResponse(playwright_script=result.script, file_path=result.file_path)

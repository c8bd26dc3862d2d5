import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from stepwright.core.errors import MissingProjectPathError
from stepwright.models.fixture import Fixture
from stepwright.models.test_case import TestCase
from stepwright.models.test_step import TestStep
from stepwright.services.fixtures import resolve_fixtures
from stepwright.services.script_assembler import (
    AssemblerOptions,
    LIVE_REFRESH,
    active_steps,
    assemble_script,
)

logger = logging.getLogger(__name__)


@dataclass
class ConsolidationResult:
    script: str
    file_path: Optional[str]
    no_active_steps: bool


def load_active_steps(db: Session, test_case_id: int):
    steps = db.query(TestStep).filter(
        TestStep.test_case_id == test_case_id,
        TestStep.disabled == False  # noqa: E712
    ).order_by(TestStep.order.asc(), TestStep.id.asc()).all()
    return active_steps(steps)


def load_fixture_map(db: Session, steps, project_id: int):
    fixture_ids = sorted({step.fixture_id for step in steps if step.fixture_id is not None})
    if not fixture_ids:
        return {}
    fixtures = db.query(Fixture).filter(
        Fixture.id.in_(fixture_ids),
        Fixture.project_id == project_id
    ).all()
    return resolve_fixtures(fixtures)


def _write_file(writer, test_case: TestCase, script: str) -> Optional[str]:
    project_path = test_case.project.playwright_project_path
    if not project_path:
        return None
    return str(writer.write(project_path, test_case.name, script))


def consolidate_test_case(db: Session, test_case: TestCase, writer, recorder, user_id=None,
                          preserve_imports: bool = True) -> ConsolidationResult:
    """
    Rebuild the test case's script from its active steps.

    The script is stored on the test case and, when the project has a Playwright
    path, written to <path>/tests/<slug>.spec.ts. A failing file write raises
    ScriptWriteError; a failing version snapshot is only logged.
    """
    steps = load_active_steps(db, test_case.id)
    fixture_map = load_fixture_map(db, steps, test_case.project_id)

    script = assemble_script(test_case, steps, fixture_map, AssemblerOptions(preserve_imports=preserve_imports))
    file_path = _write_file(writer, test_case, script)

    test_case.script_source = script
    db.commit()
    db.refresh(test_case)

    if not steps:
        logger.info("Test case %s has no active steps, stored an empty script", test_case.id)
    recorder.record_version_safely(db, test_case, user_id=user_id, version=test_case.version)

    return ConsolidationResult(script=script, file_path=file_path, no_active_steps=not steps)


def refresh_live_script(db: Session, test_case: TestCase, writer) -> ConsolidationResult:
    """Regenerate the spec file after a single-step edit; requires a Playwright project path."""
    if not test_case.project.playwright_project_path:
        raise MissingProjectPathError("Project does not have a Playwright project path")

    steps = load_active_steps(db, test_case.id)
    fixture_map = load_fixture_map(db, steps, test_case.project_id)
    logger.info("Generating live script for test case %s from %s active steps", test_case.id, len(steps))

    script = assemble_script(test_case, steps, fixture_map, LIVE_REFRESH)
    file_path = _write_file(writer, test_case, script)

    test_case.script_source = script
    db.commit()
    db.refresh(test_case)

    return ConsolidationResult(script=script, file_path=file_path, no_active_steps=not steps)

"""
Version history for test cases.

Every successful mutation snapshots the test case and all of its steps into
immutable TestCaseVersion / TestStepVersion rows. Rapid successive edits are
collapsed: a test case that got a version less than `debounce_seconds` ago is
skipped unless the caller forces it.
"""
import logging
import threading
import time
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stepwright.core.config import VERSION_DEBOUNCE_SECONDS
from stepwright.core.errors import TestCaseNotFoundError, VersionNotFoundError
from stepwright.models.fixture import Fixture
from stepwright.models.test_case import TestCase
from stepwright.models.test_step import TestStep
from stepwright.models.version import TestCaseVersion, TestStepVersion

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"


def bump_patch(version: Optional[str]) -> str:
    parts = (version or "").split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return "1.0.1"
    major, minor, patch = (int(part) for part in parts)
    return f"{major}.{minor}.{patch + 1}"


def _ordered_steps(db: Session, test_case_id: int) -> List[TestStep]:
    return db.query(TestStep).filter(
        TestStep.test_case_id == test_case_id
    ).order_by(TestStep.order.asc(), TestStep.id.asc()).all()


class VersionRecorder:
    def __init__(self, debounce_seconds: float = VERSION_DEBOUNCE_SECONDS, clock=time.monotonic):
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._last_recorded: Dict[int, float] = {}
        self._lock = threading.Lock()

    def is_debounced(self, test_case_id: int) -> bool:
        with self._lock:
            last = self._last_recorded.get(test_case_id)
        return last is not None and self._clock() - last < self.debounce_seconds

    def mark_recorded(self, test_case_id: int):
        with self._lock:
            self._last_recorded[test_case_id] = self._clock()

    def record_version(self, db: Session, test_case, user_id=None, version=None, force=False):
        """
        Snapshot a test case, given either its id or an already loaded instance.

        Returns the new TestCaseVersion, or None when the call was debounced.
        The snapshot always takes every step, disabled ones included.
        """
        test_case_id = test_case if isinstance(test_case, int) else test_case.id

        if not force and self.is_debounced(test_case_id):
            logger.debug("Skipping version for test case %s (debounced)", test_case_id)
            return None

        if isinstance(test_case, int):
            test_case = db.query(TestCase).filter(TestCase.id == test_case_id).first()
            if not test_case:
                raise TestCaseNotFoundError(test_case_id)

        snapshot = TestCaseVersion(
            test_case_id=test_case_id,
            version=version or test_case.version or DEFAULT_VERSION,
            name=test_case.name,
            description=test_case.description,
            script_source=test_case.script_source,
            created_by=user_id,
        )
        db.add(snapshot)
        db.flush()

        for step in _ordered_steps(db, test_case_id):
            db.add(TestStepVersion(
                test_case_version_id=snapshot.id,
                order=step.order,
                action=step.action,
                data=step.data,
                expected=step.expected,
                playwright_code=step.playwright_code,
                selector=step.selector,
                disabled=step.disabled,
                fixture_id=step.fixture_id,
                created_by=user_id,
            ))

        db.commit()
        db.refresh(snapshot)
        self.mark_recorded(test_case_id)

        logger.info("Recorded version %s of test case %s", snapshot.version, test_case_id)
        return snapshot

    def record_version_safely(self, db: Session, test_case, user_id=None, version=None, force=False):
        """record_version() for callers whose own change is already committed: failures are only logged."""
        try:
            return self.record_version(db, test_case, user_id=user_id, version=version, force=force)
        except SQLAlchemyError:
            db.rollback()
            test_case_id = test_case if isinstance(test_case, int) else test_case.id
            logger.exception("Error creating version for test case %s", test_case_id)
            return None


def list_versions(db: Session, test_case_id: int) -> List[TestCaseVersion]:
    return db.query(TestCaseVersion).filter(
        TestCaseVersion.test_case_id == test_case_id
    ).order_by(TestCaseVersion.created_at.desc(), TestCaseVersion.id.desc()).all()


def get_version(db: Session, test_case_id: int, version_id: int) -> TestCaseVersion:
    version = db.query(TestCaseVersion).filter(TestCaseVersion.id == version_id).first()
    if not version or version.test_case_id != test_case_id:
        raise VersionNotFoundError(version_id, test_case_id)
    return version


def restore_version(db: Session, test_case_id: int, version_id: int, user_id=None) -> TestCase:
    """Overwrite the live test case and its steps with a recorded version; history is untouched."""
    version = get_version(db, test_case_id, version_id)

    test_case = db.query(TestCase).filter(TestCase.id == test_case_id).first()
    if not test_case:
        raise TestCaseNotFoundError(test_case_id)

    test_case.name = version.name
    test_case.description = version.description
    test_case.script_source = version.script_source
    test_case.version = version.version
    test_case.updated_by = user_id

    db.query(TestStep).filter(TestStep.test_case_id == test_case_id).delete(synchronize_session=False)
    db.expire(test_case, ["steps"])

    # Fixtures deleted since the snapshot are dropped from the restored steps
    live_fixtures = {
        row.id for row in db.query(Fixture.id).filter(Fixture.project_id == test_case.project_id)
    }

    for step in version.steps:
        db.add(TestStep(
            test_case_id=test_case_id,
            order=step.order,
            action=step.action,
            data=step.data,
            expected=step.expected,
            playwright_code=step.playwright_code,
            selector=step.selector,
            disabled=step.disabled,
            fixture_id=step.fixture_id if step.fixture_id in live_fixtures else None,
            created_by=user_id,
        ))

    db.commit()
    db.refresh(test_case)

    logger.info("Restored test case %s to version %s (%s)", test_case_id, version.id, version.version)
    return test_case


# One recorder per process: the debounce window spans requests
_recorder = VersionRecorder()


def get_version_recorder() -> VersionRecorder:
    return _recorder

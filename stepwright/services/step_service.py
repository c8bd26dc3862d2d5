"""
Step mutations for test cases and fixtures.

Every test case step mutation bumps the test case PATCH version, marks it as
draft, commits, and then asks the version recorder for a snapshot. A failing
snapshot never undoes the mutation.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from stepwright.core.errors import (
    FixtureNotFoundError,
    InvalidStepInputError,
    StepNotFoundError,
    TestCaseNotFoundError,
)
from stepwright.models.fixture import Fixture
from stepwright.models.test_case import TestCase
from stepwright.models.test_step import TestStep
from stepwright.services.fallback import generate_with_fallback
from stepwright.services.version_recorder import bump_patch

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("action", "data", "expected", "disabled", "order", "playwright_code", "selector", "fixture_id")
REQUIRED_FIELDS = ("action", "disabled", "order")


def needs_generation(code: Optional[str]) -> bool:
    return not code or "TODO" in code


# --- lookups ---

def get_test_case(db: Session, project_id: int, test_case_id: int) -> TestCase:
    test_case = db.query(TestCase).filter(
        TestCase.id == test_case_id,
        TestCase.project_id == project_id
    ).first()
    if not test_case:
        raise TestCaseNotFoundError(test_case_id)
    return test_case


def list_steps(db: Session, test_case_id: int) -> List[TestStep]:
    return db.query(TestStep).filter(
        TestStep.test_case_id == test_case_id
    ).order_by(TestStep.order.asc(), TestStep.id.asc()).all()


def get_step(db: Session, test_case_id: int, step_id: int) -> TestStep:
    step = db.query(TestStep).filter(
        TestStep.id == step_id,
        TestStep.test_case_id == test_case_id
    ).first()
    if not step:
        raise StepNotFoundError(step_id)
    return step


def _check_fixture(db: Session, project_id: int, fixture_id: Optional[int]):
    if fixture_id is None:
        return
    exists = db.query(Fixture.id).filter(
        Fixture.id == fixture_id,
        Fixture.project_id == project_id
    ).first()
    if not exists:
        raise FixtureNotFoundError(fixture_id)


# --- ordering ---

def _lock_test_case(db: Session, test_case_id: int):
    # Row lock so concurrent "add step" calls cannot read the same max(order).
    # SQLite ignores FOR UPDATE but already serializes writers.
    db.query(TestCase.id).filter(TestCase.id == test_case_id).with_for_update().first()


def _next_order(db: Session, owner_column, owner_id: int) -> int:
    highest = db.query(func.max(TestStep.order)).filter(owner_column == owner_id).scalar()
    return (highest or 0) + 1


def _resequence(steps: Iterable[TestStep]):
    for position, step in enumerate(steps, start=1):
        step.order = position


# --- bookkeeping ---

def _touch(test_case: TestCase, user_id):
    test_case.version = bump_patch(test_case.version)
    test_case.status = "draft"
    test_case.updated_by = user_id


def _record(db: Session, test_case: TestCase, recorder, user_id, force=False):
    recorder.record_version_safely(db, test_case.id, user_id=user_id, force=force)


# --- test case steps ---

def create_step(db: Session, test_case: TestCase, payload, generator, recorder, user_id=None) -> TestStep:
    _check_fixture(db, test_case.project_id, payload.fixture_id)

    action = payload.action or ""
    expected = payload.expected
    selector = payload.selector
    code = payload.playwright_code

    # Fixture steps never carry their own code
    if not code and action and payload.fixture_id is None:
        generated = generate_with_fallback(generator, action, payload.data, expected)
        code = generated.playwright_code
        action = generated.action or action
        expected = generated.expected or expected
        selector = generated.selector or selector

    _lock_test_case(db, test_case.id)
    order = payload.order if payload.order is not None else _next_order(db, TestStep.test_case_id, test_case.id)

    step = TestStep(
        test_case_id=test_case.id,
        order=order,
        action=action,
        data=payload.data,
        expected=expected,
        playwright_code=code or None,
        selector=selector,
        fixture_id=payload.fixture_id,
        disabled=payload.disabled,
        created_by=user_id,
    )
    db.add(step)
    _touch(test_case, user_id)
    db.commit()
    db.refresh(step)

    logger.info("Created step %s (order %s) in test case %s", step.id, step.order, test_case.id)
    _record(db, test_case, recorder, user_id)
    return step


def create_steps_from_code(db: Session, test_case: TestCase, code: str, generator, recorder,
                           user_id=None, fixture_id=None) -> List[TestStep]:
    _check_fixture(db, test_case.project_id, fixture_id)

    parsed = generator.analyze_code(code)
    if not parsed:
        raise InvalidStepInputError("Could not parse Playwright code")

    _lock_test_case(db, test_case.id)
    order = _next_order(db, TestStep.test_case_id, test_case.id)

    created = []
    for offset, item in enumerate(parsed):
        step = TestStep(
            test_case_id=test_case.id,
            order=order + offset,
            action=item.get("action") or "",
            data=item.get("data") or "",
            expected=item.get("expected") or "",
            playwright_code=item.get("playwright_code") or None,
            selector=item.get("selector") or None,
            fixture_id=fixture_id,
            created_by=user_id,
        )
        db.add(step)
        created.append(step)

    _touch(test_case, user_id)
    db.commit()
    for step in created:
        db.refresh(step)

    logger.info("Created %s steps from code in test case %s", len(created), test_case.id)
    _record(db, test_case, recorder, user_id)
    return created


def update_step(db: Session, test_case: TestCase, step_id: int, payload, generator, recorder,
                user_id=None) -> TestStep:
    step = get_step(db, test_case.id, step_id)
    fields = payload.model_dump(exclude_unset=True)
    fixture_id = fields.get("fixture_id", step.fixture_id)
    _check_fixture(db, test_case.project_id, fixture_id)

    action = payload.action
    expected = payload.expected
    selector = payload.selector
    code = payload.playwright_code

    if needs_generation(code) and fixture_id is None:
        generated = generate_with_fallback(generator, action, payload.data, expected)
        code = generated.playwright_code
        action = generated.action or action
        expected = generated.expected or expected
        selector = generated.selector or selector

    # order is left alone: moving one step means rewriting its siblings (see reorder_steps)
    step.action = action
    step.data = payload.data
    step.expected = expected
    step.disabled = bool(payload.disabled)
    step.playwright_code = code or None
    step.selector = selector
    step.fixture_id = fixture_id
    step.updated_by = user_id

    _touch(test_case, user_id)
    db.commit()
    db.refresh(step)

    _record(db, test_case, recorder, user_id)
    return step


def patch_step(db: Session, test_case: TestCase, step_id: int, payload, recorder, user_id=None) -> TestStep:
    step = get_step(db, test_case.id, step_id)
    changes = payload.model_dump(exclude_unset=True)
    nulled = [field for field in REQUIRED_FIELDS if field in changes and changes[field] is None]
    if nulled:
        raise InvalidStepInputError(f"Fields cannot be null: {', '.join(nulled)}")

    if "fixture_id" in changes:
        _check_fixture(db, test_case.project_id, changes["fixture_id"])

    for field in PATCHABLE_FIELDS:
        if field in changes:
            setattr(step, field, changes[field])
    step.updated_by = user_id

    _touch(test_case, user_id)
    db.commit()
    db.refresh(step)

    _record(db, test_case, recorder, user_id)
    return step


def delete_step(db: Session, test_case: TestCase, step_id: int, recorder, user_id=None):
    step = get_step(db, test_case.id, step_id)
    db.delete(step)
    db.flush()

    _resequence(list_steps(db, test_case.id))
    _touch(test_case, user_id)
    db.commit()

    logger.info("Deleted step %s from test case %s", step_id, test_case.id)
    _record(db, test_case, recorder, user_id)


def bulk_delete_steps(db: Session, test_case: TestCase, step_ids: List[int], recorder, user_id=None) -> int:
    if not step_ids:
        raise InvalidStepInputError("No step ids given")

    steps = db.query(TestStep).filter(
        TestStep.test_case_id == test_case.id,
        TestStep.id.in_(step_ids)
    ).all()
    missing = set(step_ids) - {step.id for step in steps}
    if missing:
        raise StepNotFoundError(sorted(missing)[0])

    for step in steps:
        db.delete(step)
    db.flush()

    _resequence(list_steps(db, test_case.id))
    _touch(test_case, user_id)
    db.commit()

    _record(db, test_case, recorder, user_id)
    return len(steps)


def clone_step(db: Session, test_case: TestCase, source_step_id: int, recorder, user_id=None) -> TestStep:
    """Copy a step of the same test case to the end of the list, enabled."""
    source = get_step(db, test_case.id, source_step_id)

    _lock_test_case(db, test_case.id)
    step = _copy_step(source, test_case_id=test_case.id, created_by=user_id)
    step.order = _next_order(db, TestStep.test_case_id, test_case.id)
    step.disabled = False
    db.add(step)
    _touch(test_case, user_id)
    db.commit()
    db.refresh(step)

    logger.info("Cloned step %s as %s in test case %s", source_step_id, step.id, test_case.id)
    _record(db, test_case, recorder, user_id)
    return step


def replace_steps(db: Session, test_case: TestCase, payloads, recorder, user_id=None) -> List[TestStep]:
    """Bulk save: the given steps replace every existing step, no code generation."""
    if not payloads:
        raise InvalidStepInputError("At least one test step is required")
    for payload in payloads:
        _check_fixture(db, test_case.project_id, payload.fixture_id)

    _lock_test_case(db, test_case.id)
    db.query(TestStep).filter(TestStep.test_case_id == test_case.id).delete(synchronize_session=False)
    db.expire(test_case, ["steps"])

    for position, payload in enumerate(payloads, start=1):
        db.add(TestStep(
            test_case_id=test_case.id,
            order=payload.order if payload.order is not None else position,
            action=payload.action or "",
            data=payload.data or None,
            expected=payload.expected or None,
            playwright_code=payload.playwright_code or None,
            selector=payload.selector,
            fixture_id=payload.fixture_id,
            disabled=payload.disabled,
            created_by=user_id,
        ))

    _touch(test_case, user_id)
    db.commit()

    logger.info("Saved %s steps in test case %s", len(payloads), test_case.id)
    _record(db, test_case, recorder, user_id)
    return list_steps(db, test_case.id)


def reorder_steps(db: Session, test_case: TestCase, orders, recorder, user_id=None) -> List[TestStep]:
    """Bulk rewrite of step orders: `orders` is a list of items with .id and .order."""
    if not orders:
        raise InvalidStepInputError("Invalid steps data")

    steps = {step.id: step for step in list_steps(db, test_case.id)}
    unknown = [item.id for item in orders if item.id not in steps]
    if unknown:
        raise InvalidStepInputError(f"Steps {unknown} do not belong to test case {test_case.id}")

    for item in orders:
        steps[item.id].order = item.order

    _touch(test_case, user_id)
    db.commit()

    _record(db, test_case, recorder, user_id)
    return list_steps(db, test_case.id)


# --- fixture steps (not versioned) ---

def list_fixture_steps(db: Session, fixture_id: int) -> List[TestStep]:
    return db.query(TestStep).filter(
        TestStep.parent_fixture_id == fixture_id
    ).order_by(TestStep.order.asc(), TestStep.id.asc()).all()


def create_fixture_step(db: Session, fixture: Fixture, payload, generator, user_id=None) -> TestStep:
    code = payload.playwright_code
    action = payload.action or ""
    expected = payload.expected
    selector = payload.selector
    if not code and action:
        generated = generate_with_fallback(generator, action, payload.data, expected)
        code = generated.playwright_code
        action = generated.action or action
        expected = generated.expected or expected
        selector = generated.selector or selector

    order = payload.order if payload.order is not None else _next_order(db, TestStep.parent_fixture_id, fixture.id)
    step = TestStep(
        parent_fixture_id=fixture.id,
        order=order,
        action=action,
        data=payload.data,
        expected=expected,
        playwright_code=code or None,
        selector=selector,
        disabled=payload.disabled,
        created_by=user_id,
    )
    db.add(step)
    db.commit()
    db.refresh(step)
    return step


def delete_fixture_step(db: Session, fixture: Fixture, step_id: int):
    step = db.query(TestStep).filter(
        TestStep.id == step_id,
        TestStep.parent_fixture_id == fixture.id
    ).first()
    if not step:
        raise StepNotFoundError(step_id)

    db.delete(step)
    db.flush()
    _resequence(list_fixture_steps(db, fixture.id))
    db.commit()


def bulk_delete_fixture_steps(db: Session, fixture: Fixture, step_ids: List[int]) -> int:
    if not step_ids:
        raise InvalidStepInputError("No step ids given")

    steps = db.query(TestStep).filter(
        TestStep.parent_fixture_id == fixture.id,
        TestStep.id.in_(step_ids)
    ).all()
    for step in steps:
        db.delete(step)
    db.flush()

    _resequence(list_fixture_steps(db, fixture.id))
    db.commit()
    return len(steps)


# --- cloning ---

def _copy_step(source: TestStep, **owner) -> TestStep:
    return TestStep(
        order=source.order,
        action=source.action,
        data=source.data,
        expected=source.expected,
        playwright_code=source.playwright_code,
        selector=source.selector,
        disabled=source.disabled,
        fixture_id=source.fixture_id,
        **owner,
    )


def clone_test_case(db: Session, test_case: TestCase, recorder, user_id=None) -> TestCase:
    """
    Copy a test case and its steps into a new "<name> (Clone)" test case.

    The clone keeps the source version and starts its own history with a
    forced snapshot.
    """
    clone = TestCase(
        project_id=test_case.project_id,
        name=f"{test_case.name} (Clone)",
        description=test_case.description,
        tags=test_case.tags,
        status="pending",
        version=test_case.version,
        script_source=test_case.script_source,
        created_by=user_id,
        updated_by=user_id,
    )
    db.add(clone)
    db.flush()

    for source in list_steps(db, test_case.id):
        db.add(_copy_step(source, test_case_id=clone.id, created_by=user_id))

    db.commit()
    db.refresh(clone)

    logger.info("Cloned test case %s as %s", test_case.id, clone.id)
    _record(db, clone, recorder, user_id, force=True)
    return clone


def clone_fixture(db: Session, fixture: Fixture, user_id=None) -> Fixture:
    clone = Fixture(
        project_id=fixture.project_id,
        name=f"{fixture.name} (Clone)",
        description=fixture.description,
        type=fixture.type or "data",
        content=fixture.content,
    )
    db.add(clone)
    db.flush()

    for source in list_fixture_steps(db, fixture.id):
        db.add(_copy_step(source, parent_fixture_id=clone.id, created_by=user_id))

    db.commit()
    db.refresh(clone)

    logger.info("Cloned fixture %s as %s", fixture.id, clone.id)
    return clone

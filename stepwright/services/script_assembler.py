"""
Step-to-script assembly.

Turns a test case, its steps and the fixtures those steps reference into one
Playwright spec. Output only depends on the inputs: the same test case, steps
and fixtures always produce the same bytes.

Two modes share every rendering rule (indentation, comments, escaping,
fixture precedence):

  * consolidation: always bootstraps navigation, code-less steps get a TODO
  * live refresh: skips the bootstrap goto when a step already navigates and
    synthesizes code for code-less steps from their action keyword
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from stepwright.core.config import DEFAULT_ACTION_TIMEOUT_MS
from stepwright.services.fallback import synthesize_step_code, text_of, todo_placeholder
from stepwright.services.fixtures import FixtureMeta
from stepwright.services.script_builder import ScriptBuilder, quote
from stepwright.services.tags import format_tag_block, normalize_tags

logger = logging.getLogger(__name__)

PLAYWRIGHT_MODULE = "@playwright/test"

ALWAYS_BOOTSTRAP = "always-bootstrap"
DETECT_EXISTING = "detect-existing"

FALLBACK_ONLY = "fallback-only"
BEST_EFFORT = "best-effort"


@dataclass(frozen=True)
class AssemblerOptions:
    preserve_imports: bool = True
    navigation_mode: str = ALWAYS_BOOTSTRAP
    synthesis_mode: str = FALLBACK_ONLY
    base_path: str = "/"
    default_timeout: int = DEFAULT_ACTION_TIMEOUT_MS


CONSOLIDATION = AssemblerOptions()
LIVE_REFRESH = AssemblerOptions(navigation_mode=DETECT_EXISTING, synthesis_mode=BEST_EFFORT)


def _order_key(step):
    order = getattr(step, "order", None)
    return order if isinstance(order, int) else 0


def active_steps(steps: Sequence) -> List:
    """Enabled steps by ascending order; equal orders keep their input (creation) order."""
    enabled = [step for step in steps if not getattr(step, "disabled", False)]
    return sorted(enabled, key=_order_key)


def _step_fixture(step, fixture_map: Dict[int, FixtureMeta]):
    fixture_id = getattr(step, "fixture_id", None)
    if fixture_id is None:
        return None
    return fixture_map.get(fixture_id)


def used_fixtures(steps: Sequence, fixture_map: Dict[int, FixtureMeta]) -> List[FixtureMeta]:
    """Distinct fixtures referenced by the steps, in order of first appearance."""
    seen = set()
    fixtures = []
    for step in steps:
        fixture = _step_fixture(step, fixture_map)
        if fixture is not None and fixture.id not in seen:
            seen.add(fixture.id)
            fixtures.append(fixture)
    return fixtures


def has_navigation(steps: Sequence) -> bool:
    for step in steps:
        if "goto" in text_of(getattr(step, "playwright_code", None)):
            return True
        if "navigate" in text_of(getattr(step, "action", None)).lower():
            return True
    return False


def _declaration(test_case, fixtures: List[FixtureMeta]) -> str:
    name = quote(text_of(getattr(test_case, "name", None)))
    tag_block = format_tag_block(normalize_tags(getattr(test_case, "tags", None)))
    params = ", ".join(["page"] + [fixture.export_name for fixture in fixtures])
    return f"test({name}{tag_block}, async ({{ {params} }}) => {{"


def _step_header(index: int, step) -> str:
    header = f"Step {index}: {text_of(getattr(step, 'action', None))}"
    data = text_of(getattr(step, "data", None))
    if data:
        header += f" {data}"
    return header


def _write_imports(builder: ScriptBuilder, fixtures: List[FixtureMeta]):
    if not fixtures:
        builder.line(f"import {{ test, expect }} from {quote(PLAYWRIGHT_MODULE)};")
        return

    builder.line(f"import {{ expect }} from {quote(PLAYWRIGHT_MODULE)};")
    for fixture in fixtures:
        builder.line(f"import {{ test as {fixture.test_alias} }} from {quote(fixture.path)};")
    builder.blank()

    if len(fixtures) == 1:
        builder.line(f"const test = {fixtures[0].test_alias};")
    else:
        composed = fixtures[0].test_alias + "".join(
            f".extend({fixture.test_alias})" for fixture in fixtures[1:]
        )
        builder.comment("Compose multiple fixtures")
        builder.line(f"const test = {composed};")
    builder.blank()


def _write_step(builder: ScriptBuilder, index: int, step, fixture_map, options: AssemblerOptions):
    fixture = _step_fixture(step, fixture_map)
    if fixture is not None:
        builder.comment(f"Step {index}: {text_of(getattr(step, 'action', None))} (Using fixture: {fixture.name})")
        builder.comment(f"Fixture '{fixture.name}' is already injected into the test function")
        builder.comment("No additional code needed as the fixture is auto-applied")
        builder.blank()
        return

    builder.comment(_step_header(index, step))
    code = text_of(getattr(step, "playwright_code", None))
    if code.strip():
        builder.code(code)
    elif options.synthesis_mode == BEST_EFFORT:
        builder.code(synthesize_step_code(step, options.base_path))
    else:
        builder.line(todo_placeholder(getattr(step, "action", None)))
    builder.blank()


def build_empty_script(test_case) -> str:
    """Minimal valid spec for a test case that has no active steps yet."""
    builder = ScriptBuilder()
    builder.line(f"import {{ test, expect }} from {quote(PLAYWRIGHT_MODULE)};")
    builder.blank()
    with builder.block(_declaration(test_case, []), "});"):
        builder.comment("No active test steps")
        builder.line("console.log('This test has no active steps');")
    return builder.render()


def assemble_script(test_case, steps: Sequence, fixture_map: Dict[int, FixtureMeta] = None,
                    options: AssemblerOptions = CONSOLIDATION) -> str:
    fixture_map = fixture_map or {}
    steps = active_steps(steps)

    if not steps:
        return build_empty_script(test_case)

    fixtures = used_fixtures(steps, fixture_map)
    builder = ScriptBuilder()

    if options.preserve_imports:
        _write_imports(builder, fixtures)

    with builder.block(_declaration(test_case, fixtures), "});"):
        builder.line(f"page.setDefaultTimeout({int(options.default_timeout)});")
        if options.navigation_mode == ALWAYS_BOOTSTRAP or not has_navigation(steps):
            builder.line(f"await page.goto({quote(options.base_path)});")
        builder.blank()

        for index, step in enumerate(steps, start=1):
            _write_step(builder, index, step, fixture_map, options)

    logger.debug("Assembled script for %r from %s active steps", getattr(test_case, "name", None), len(steps))
    return builder.render()

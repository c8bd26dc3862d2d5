import logging

from stepwright.core.errors import CodeGenerationError
from stepwright.services.code_generator import GeneratedStep
from stepwright.services.script_builder import comment_text, quote

logger = logging.getLogger(__name__)

COMPOUND_SEPARATOR = " >> "


def text_of(value) -> str:
    """Coerce a possibly missing or non-string step field to text."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def todo_placeholder(action) -> str:
    return f'// TODO: Implement "{comment_text(text_of(action))}" step'


def generate_with_fallback(generator, action, data=None, expected=None) -> GeneratedStep:
    """Ask the code generator for a step; a failed generation yields the TODO placeholder."""
    try:
        return generator.generate_code_from_step(action, data, expected)
    except CodeGenerationError as exc:
        logger.warning("Code generation failed for step %r, using placeholder: %s", action, exc)
        return GeneratedStep(
            playwright_code=todo_placeholder(action),
            action=action,
            expected=expected,
            selector=None,
        )


def split_target(step):
    """
    Return (selector, value) for a step.

    An explicit selector wins; otherwise `data` may carry "selector >> value".
    """
    selector = text_of(getattr(step, "selector", None)).strip()
    data = text_of(getattr(step, "data", None))
    if selector:
        return selector, data
    if COMPOUND_SEPARATOR in data:
        left, right = data.rsplit(COMPOUND_SEPARATOR, 1)
        return left.strip(), right.strip()
    return "", data


def synthesize_step_code(step, base_path: str = "/") -> str:
    """Best-effort Playwright code for a step that has no generated fragment."""
    action = text_of(getattr(step, "action", None))
    keyword = action.lower()
    selector, value = split_target(step)
    locator = f"page.locator({quote(selector)})"

    if "navigate" in keyword:
        target = text_of(getattr(step, "data", None)).strip() or base_path
        lines = [f"await page.goto({quote(target)});"]
    elif "click" in keyword:
        if selector:
            lines = [f"await {locator}.click();"]
        else:
            lines = ["// TODO: Click operation - missing selector"]
    elif "fill" in keyword or "type" in keyword:
        if selector and value:
            lines = [f"await {locator}.fill({quote(value)});"]
        else:
            lines = ["// TODO: Fill operation - missing selector or data"]
    elif "select" in keyword:
        if selector and value:
            lines = [f"await {locator}.selectOption({quote(value)});"]
        else:
            lines = ["// TODO: Select operation - missing selector or data"]
    elif "check" in keyword:
        method = "uncheck" if "uncheck" in keyword else "check"
        if selector:
            lines = [f"await {locator}.{method}();"]
        else:
            lines = [f"// TODO: {method} operation - missing selector"]
    else:
        lines = [todo_placeholder(action)]

    expected = text_of(getattr(step, "expected", None)).strip()
    if expected and selector:
        lines.append("// Assertion based on expected result")
        lines.append(f"await expect({locator}).toContainText({quote(expected)});")

    return "\n".join(lines)

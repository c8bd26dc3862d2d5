import json
import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from google import genai
from openai import OpenAI
from anthropic import Anthropic

from stepwright.core.config import CODEGEN_MODEL
from stepwright.core.errors import CodeGenerationError

logger = logging.getLogger(__name__)


@dataclass
class GeneratedStep:
    playwright_code: str
    action: Optional[str] = None
    expected: Optional[str] = None
    selector: Optional[str] = None


CODEGEN_PROMPT = """You are a senior QA engineer writing Playwright tests in TypeScript.
Turn the manual test step below into Playwright code that runs inside
`test('...', async ({{ page }}) => {{ ... }})`.

Action: {action}
Data: {data}
Expected result: {expected}

Rules:
- Only emit statements for the body of the test, no imports and no test() wrapper.
- Prefer page.locator() / getByRole() and add an expect() assertion when an expected result is given.
- Data written as "selector >> value" means the value goes into that selector.

Reply with a single JSON object and nothing else:
{{"action": "<short action label>", "expected": "<expected result>", "selector": "<main selector or empty>", "playwrightCode": "<code>"}}
"""

_FENCE = re.compile(r"```(?:json|typescript|ts|javascript|js)?\s*(.*?)```", re.DOTALL)


def _strip_fences(text: str) -> str:
    match = _FENCE.search(text or "")
    return (match.group(1) if match else text or "").strip()


def parse_generated_step(text: str, action=None, expected=None) -> GeneratedStep:
    """Read the model reply: JSON object preferred, raw code accepted."""
    body = _strip_fences(text)
    try:
        payload = json.loads(body)
    except ValueError:
        if "await " in body or "expect(" in body:
            return GeneratedStep(playwright_code=body, action=action, expected=expected)
        raise CodeGenerationError(f"Model reply is neither JSON nor Playwright code: {body[:200]!r}")

    if not isinstance(payload, dict) or not isinstance(payload.get("playwrightCode"), str):
        raise CodeGenerationError("Model reply has no playwrightCode field")

    # Only keep the model's labels when they carry something
    ai_action = (payload.get("action") or "").strip()
    ai_expected = (payload.get("expected") or "").strip()
    return GeneratedStep(
        playwright_code=payload["playwrightCode"],
        action=ai_action if ai_action and ai_action != "N/A" else action,
        expected=ai_expected or expected,
        selector=(payload.get("selector") or "").strip() or None,
    )


class CodeGenerator:
    """Routes code generation prompts to Gemini (default), OpenAI or Anthropic."""

    def __init__(self, model_name: str = CODEGEN_MODEL, api_keys: Optional[Dict[str, str]] = None):
        self.model_name = model_name
        self.api_keys = api_keys or {}

    def _key(self, provider, env_name):
        return self.api_keys.get(provider) or os.getenv(env_name)

    def generate_code_from_step(self, action, data=None, expected=None) -> GeneratedStep:
        prompt = CODEGEN_PROMPT.format(
            action=action or "N/A",
            data=data or "N/A",
            expected=expected or "N/A",
        )
        text = self.call_llm_router(prompt)
        return parse_generated_step(text, action=action, expected=expected)

    def analyze_code(self, code: str) -> List[dict]:
        return analyze_code(code)

    def call_llm_router(self, prompt) -> str:
        model_slug = self.model_name.lower()

        if "gpt" in model_slug:
            return self.call_openai(prompt)
        if "claude" in model_slug:
            return self.call_anthropic(prompt)

        # Default to Gemini if not specified
        return self.call_gemini(prompt)

    # --- PROVIDER IMPLEMENTATIONS ---

    def call_openai(self, prompt) -> str:
        api_key = self._key("openai", "OPENAI_API_KEY")
        if not api_key:
            raise CodeGenerationError("OpenAI key missing, set OPENAI_API_KEY")
        try:
            client = OpenAI(api_key=api_key)
            response = client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}]
            )
            return response.choices[0].message.content
        except Exception as e:
            raise CodeGenerationError(f"OpenAI error: {e}") from e

    def call_anthropic(self, prompt) -> str:
        api_key = self._key("anthropic", "ANTHROPIC_API_KEY")
        if not api_key:
            raise CodeGenerationError("Anthropic key missing, set ANTHROPIC_API_KEY")
        try:
            client = Anthropic(api_key=api_key)
            message = client.messages.create(
                model=self.model_name,
                max_tokens=1000,
                messages=[{"role": "user", "content": prompt}]
            )
            return message.content[0].text
        except Exception as e:
            raise CodeGenerationError(f"Anthropic error: {e}") from e

    def call_gemini(self, prompt, retries=3) -> str:
        api_key = self._key("gemini", "GEMINI_API_KEY")
        if not api_key:
            raise CodeGenerationError("Gemini key missing, set GEMINI_API_KEY")

        try:
            client = genai.Client(api_key=api_key)
        except Exception as e:
            raise CodeGenerationError(f"Gemini error: {e}") from e

        for attempt in range(retries):
            try:
                response = client.models.generate_content(
                    model=self.model_name,
                    contents=prompt
                )
                return response.text
            except Exception as e:
                if "429" in str(e) or "RESOURCE_EXHAUSTED" in str(e):
                    logger.warning("Gemini rate limit (attempt %s/%s)", attempt + 1, retries)
                    time.sleep(5 * (attempt + 1))
                    continue
                raise CodeGenerationError(f"Gemini error: {e}") from e

        raise CodeGenerationError("Gemini failed after max retries")


# --- Static analysis of pasted Playwright code ---

_QUOTED = r"""['"`]([^'"`]+)['"`]"""
_GOTO = re.compile(r"\.goto\(\s*" + _QUOTED)
_LOCATOR = re.compile(r"(?:locator|\$)\(\s*" + _QUOTED)
_CLICK = re.compile(r"\.click\(\s*" + _QUOTED)
_FILL = re.compile(r"\.(?:fill|type)\(\s*" + _QUOTED + r"\s*,\s*" + _QUOTED)
_FILL_VALUE = re.compile(r"\.(?:fill|type)\(\s*" + _QUOTED + r"\s*\)")
_CHECK = re.compile(r"\.(?:check|uncheck)\(\s*" + _QUOTED)
_SELECT = re.compile(r"\.selectOption\(\s*" + _QUOTED + r"(?:\s*,\s*" + _QUOTED + r")?")

_SKIPPED_PREFIXES = ("import ", "test(", "test.describe(", "});", "})", "//")


def _statements(code: str) -> List[str]:
    statements = []
    for line in (code or "").splitlines():
        line = line.strip()
        if not line or line.startswith(_SKIPPED_PREFIXES):
            continue
        statements.append(line)
    return statements


def _locator_selector(statement: str) -> str:
    match = _LOCATOR.search(statement)
    return match.group(1) if match else ""


def analyze_statement(statement: str) -> dict:
    step = {
        "action": "Playwright Step",
        "data": statement,
        "expected": "Step completes successfully",
        "selector": "",
        "playwright_code": statement,
    }

    if "expect(" in statement:
        step.update(action="Assertion", expected=statement, selector=_locator_selector(statement), data="")
    elif ".goto(" in statement:
        match = _GOTO.search(statement)
        if match:
            url = match.group(1)
            step.update(action="Navigate", data=url, expected=f'Page navigates to "{url}" successfully')
        else:
            step.update(action="Navigate")
    elif ".click(" in statement:
        match = _CLICK.search(statement)
        selector = match.group(1) if match else _locator_selector(statement)
        step.update(action="Click Element", expected="Element is clicked successfully", selector=selector)
        if selector:
            step["data"] = f"Click on selector: {selector}"
    elif ".fill(" in statement or ".type(" in statement:
        step["action"] = "Input Text"
        match = _FILL.search(statement)
        if match:
            selector, value = match.group(1), match.group(2)
        else:
            value_match = _FILL_VALUE.search(statement)
            selector = _locator_selector(statement)
            value = value_match.group(1) if value_match else ""
        if value:
            step.update(data=value, expected=f'Text "{value}" is entered successfully', selector=selector)
    elif ".uncheck(" in statement or ".check(" in statement:
        unchecking = ".uncheck(" in statement
        match = _CHECK.search(statement)
        selector = match.group(1) if match else _locator_selector(statement)
        step.update(
            action="Uncheck Checkbox" if unchecking else "Check Checkbox",
            expected="Checkbox is unchecked" if unchecking else "Checkbox is checked",
            selector=selector,
            data=selector,
        )
    elif ".selectOption(" in statement:
        match = _SELECT.search(statement)
        if match and match.group(2):
            selector, value = match.group(1), match.group(2)
        else:
            selector = _locator_selector(statement)
            value = match.group(1) if match else ""
        step.update(action="Select Option", selector=selector, data=value,
                    expected=f'Option "{value}" is selected' if value else step["expected"])

    return step


def analyze_code(code: str) -> List[dict]:
    """Split a Playwright snippet into step dicts (action, data, expected, selector, code)."""
    return [analyze_statement(statement) for statement in _statements(code)]

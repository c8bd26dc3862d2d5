import logging
import re
from pathlib import Path

from stepwright.core.config import SCRIPT_EXTENSION
from stepwright.core.errors import ScriptWriteError

logger = logging.getLogger(__name__)

TESTS_DIR = "tests"


def to_valid_file_name(name: str) -> str:
    """'Login Test #2' -> 'login-test-2'"""
    name = (name or "").strip()
    name = re.sub(r"[^\w\s-]", "", name)
    name = re.sub(r"\s+", "-", name)
    name = re.sub(r"-+", "-", name)
    return name.lower()


def script_path(project_root, test_name: str, extension: str = SCRIPT_EXTENSION) -> Path:
    return Path(project_root) / TESTS_DIR / f"{to_valid_file_name(test_name)}.spec.{extension}"


class ScriptWriter:
    """Writes generated specs into a Playwright project's tests directory."""

    def __init__(self, extension: str = SCRIPT_EXTENSION):
        self.extension = extension

    def write(self, project_root, test_name: str, content: str) -> Path:
        path = script_path(project_root, test_name, self.extension)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise ScriptWriteError(path, exc) from exc
        logger.info("Updated Playwright test file at: %s", path)
        return path

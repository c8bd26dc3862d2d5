import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixtureMeta:
    id: int
    name: str
    export_name: str
    path: str
    type: str

    @property
    def test_alias(self) -> str:
        """Local name the fixture's `test` object is imported under."""
        return f"{self.export_name}Test"


def derive_export_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (name or "").lower())


def derive_path(name: str) -> str:
    return "fixtures/" + re.sub(r"[^a-z0-9]+", "_", (name or "").lower())


def derive_content(name: str) -> dict:
    """Default content blob for a fixture that was created without one."""
    export_name = derive_export_name(name)
    return {
        "exportName": export_name,
        "path": derive_path(name),
        "filename": f"{export_name}.ts",
    }


def _read_content(fixture) -> dict:
    content = getattr(fixture, "content", None)
    if not content:
        return {}
    if isinstance(content, dict):
        return content
    try:
        info = json.loads(content)
    except (TypeError, ValueError) as exc:
        logger.warning("Could not parse fixture content for %s: %s", fixture.id, exc)
        return {}
    if not isinstance(info, dict):
        logger.warning("Fixture content for %s is not an object, ignoring it", fixture.id)
        return {}
    return info


def resolve_fixture(fixture) -> FixtureMeta:
    info = _read_content(fixture)
    return FixtureMeta(
        id=fixture.id,
        name=fixture.name,
        export_name=info.get("exportName") or derive_export_name(fixture.name),
        path=info.get("path") or derive_path(fixture.name),
        type=fixture.type,
    )


def resolve_fixtures(fixtures: Iterable) -> Dict[int, FixtureMeta]:
    """Build `fixture id -> FixtureMeta` for the fixtures referenced by a test's steps."""
    return {fixture.id: resolve_fixture(fixture) for fixture in fixtures}

class StepwrightError(Exception):
    """Base class for domain errors raised by the service layer."""


class NotFoundError(StepwrightError):
    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(message)


class TestCaseNotFoundError(NotFoundError):
    def __init__(self, test_case_id=None):
        super().__init__("Test case", test_case_id)


class StepNotFoundError(NotFoundError):
    def __init__(self, step_id=None):
        super().__init__("Test step", step_id)


class FixtureNotFoundError(NotFoundError):
    def __init__(self, fixture_id=None):
        super().__init__("Fixture", fixture_id)


class VersionNotFoundError(NotFoundError):
    def __init__(self, version_id=None, test_case_id=None):
        self.test_case_id = test_case_id
        super().__init__("Version", version_id)
        if test_case_id is not None:
            self.args = (f"Version {version_id} not found for test case {test_case_id}",)


class InvalidStepInputError(StepwrightError):
    """Step payload that cannot be applied (unknown ids, unparseable code, ...)."""


class CodeGenerationError(StepwrightError):
    pass


class ScriptWriteError(StepwrightError):
    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = str(reason)
        super().__init__(f"Failed to write Playwright test file {self.path}: {self.reason}")


class MissingProjectPathError(StepwrightError):
    pass

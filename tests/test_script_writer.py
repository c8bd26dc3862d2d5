import pytest

from stepwright.core.errors import ScriptWriteError
from stepwright.services.script_writer import ScriptWriter, script_path, to_valid_file_name


def test_file_names():
    assert to_valid_file_name("Login Test #2") == "login-test-2"
    assert to_valid_file_name("  Checkout   flow -- guest ") == "checkout-flow-guest"


def test_script_path(tmp_path):
    assert script_path(tmp_path, "Login Test") == tmp_path / "tests" / "login-test.spec.ts"
    assert script_path(tmp_path, "Login Test", "js").name == "login-test.spec.js"


def test_write_creates_tests_directory(tmp_path):
    path = ScriptWriter().write(tmp_path / "pw", "Login Test", "test('x');\n")
    assert path == tmp_path / "pw" / "tests" / "login-test.spec.ts"
    assert path.read_text(encoding="utf-8") == "test('x');\n"


def test_write_overwrites(tmp_path):
    writer = ScriptWriter()
    writer.write(tmp_path, "Login", "old")
    path = writer.write(tmp_path, "Login", "new")
    assert path.read_text(encoding="utf-8") == "new"


def test_write_failure_is_raised(tmp_path):
    # a plain file where the tests directory should go
    (tmp_path / "tests").write_text("not a directory")
    with pytest.raises(ScriptWriteError) as excinfo:
        ScriptWriter().write(tmp_path, "Login", "content")
    assert excinfo.value.path.endswith("login.spec.ts")

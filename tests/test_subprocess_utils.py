from __future__ import annotations

import io
import sys

import pytest

from webui_deploy.commands import CommandSpec
from webui_deploy.subprocess_utils import COMMAND_NOT_FOUND, CommandError, dry_run_command, run_command


def _py(code: str, **kwargs) -> CommandSpec:  # noqa: ANN003
    return CommandSpec.of(sys.executable, "-c", code, **kwargs)


def test_capture_mode_returns_output() -> None:
    result = run_command(_py("print('hello')"))

    assert result.ok
    assert result.stdout.strip() == "hello"


def test_failure_raises_with_returncode() -> None:
    with pytest.raises(CommandError) as excinfo:
        run_command(_py("import sys; sys.stderr.write('bad'); sys.exit(3)"))

    assert excinfo.value.returncode == 3
    assert "exit=3" in str(excinfo.value)
    assert "bad" in str(excinfo.value)


def test_check_false_returns_nonzero_result() -> None:
    result = run_command(_py("import sys; sys.exit(4)"), check=False)

    assert result.returncode == 4
    assert not result.ok


def test_missing_program_maps_to_127() -> None:
    with pytest.raises(CommandError) as excinfo:
        run_command(CommandSpec.of("definitely-not-a-real-binary-webui-deploy"))

    assert excinfo.value.returncode == COMMAND_NOT_FOUND


def test_capture_timeout_raises_command_error() -> None:
    with pytest.raises(CommandError) as excinfo:
        run_command(_py("import time; time.sleep(5)"), timeout=0.2)

    assert excinfo.value.returncode == 1
    assert "0.2초 안에" in str(excinfo.value)


@pytest.mark.parametrize(("returncode", "expected"), [(3, 3), (0, 1), (-9, 137), (-15, 143)])
def test_exit_status_maps_signals_like_shell(returncode: int, expected: int) -> None:
    assert CommandError("x", returncode=returncode).exit_status == expected


def test_env_is_passed_to_child() -> None:
    spec = _py("import os; print(os.environ['WEBUI_SECRET_KEY'])", env={"WEBUI_SECRET_KEY": "abc"})

    result = run_command(spec)

    assert result.stdout.strip() == "abc"


def test_stream_output_echoes_lines(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_out = io.StringIO()
    monkeypatch.setattr(sys, "stdout", fake_out)

    result = run_command(_py("print('line1'); print('line2')"), stream_output=True)

    assert result.returncode == 0
    assert "line1\nline2" in fake_out.getvalue()
    assert "line2" in result.stdout


def test_secret_values_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("INFO")
    spec = _py("pass")
    spec = CommandSpec.of(*spec.argv, "OPENAI_API_KEY=sk-abc")

    dry_run_command(spec)

    assert "sk-abc" not in caplog.text
    assert "OPENAI_API_KEY=***" in caplog.text

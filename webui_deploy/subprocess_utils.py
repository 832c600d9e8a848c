from __future__ import annotations

import os
import subprocess
import sys
from dataclasses import dataclass
from textwrap import shorten
from typing import Callable, Optional

from .commands import CommandSpec
from .logging_utils import get_logger


logger = get_logger(__name__)


# 셸에서 명령을 찾지 못했을 때와 같은 종료 코드
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """
    외부 명령이 0 이 아닌 코드로 끝났을 때 발생.
    CLI 는 exit_status 를 프로세스 종료 코드로 사용한다.
    """

    def __init__(self, message: str, *, returncode: int) -> None:
        super().__init__(message)
        self.returncode = returncode

    @property
    def exit_status(self) -> int:
        # 시그널로 죽은 자식(returncode < 0)은 셸과 같이 128 + 시그널 번호로 바꾼다.
        if self.returncode < 0:
            return 128 + abs(self.returncode)
        return self.returncode or 1


# 테스트에서는 이 시그니처를 따르는 가짜 runner 를 주입한다.
Runner = Callable[..., RunResult]


def _child_env(spec: CommandSpec) -> Optional[dict[str, str]]:
    if not spec.env:
        return None
    env = dict(os.environ)
    env.update(spec.env)
    return env


def _not_found(spec: CommandSpec) -> CommandError:
    return CommandError(
        f"필요한 명령을 찾을 수 없습니다: {spec.program} (docker/gcloud 가 설치되어 있는지 확인하세요)",
        returncode=COMMAND_NOT_FOUND,
    )


def _timed_out(spec: CommandSpec, timeout: float | None) -> CommandError:
    return CommandError(
        f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {spec.display()}",
        returncode=1,
    )


def _failed(spec: CommandSpec, returncode: int, output: str = "", label: str = "stdout/stderr") -> CommandError:
    detail = f"\n{label}:\n" + shorten(output, width=2000) if output else ""
    return CommandError(
        f"명령 실행 실패: {spec.display()} (exit={returncode}){detail}",
        returncode=returncode,
    )


def run_command(
    spec: CommandSpec,
    *,
    check: bool = True,
    stream_output: bool = False,
    interactive: bool = False,
    timeout: float | None = None,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - 기본(capture): stdout/stderr 캡처, 실패 시 요약 포함
    - stream_output=True : stdout/stderr 를 실시간으로 터미널에 흘린다 (docker build/push 등)
    - interactive=True   : 표준 입출력을 그대로 물려준다 (docker login 비밀번호 입력 등)

    check=True 이면 0 이 아닌 종료 코드에서 CommandError 를 던진다.
    timeout 은 capture/interactive 모드에만 적용된다. 초과하면 자식을 종료하고
    CommandError(returncode=1) 를 던진다. stream 모드는 출력이 끝날 때까지 기다린다.
    """
    logger.info("명령 실행: %s", spec.display())
    env = _child_env(spec)

    if interactive:
        try:
            proc = subprocess.run(list(spec.argv), env=env, timeout=timeout)  # noqa: S603
        except FileNotFoundError as e:
            raise _not_found(spec) from e
        except subprocess.TimeoutExpired as e:
            raise _timed_out(spec, timeout) from e
        if check and proc.returncode != 0:
            raise _failed(spec, proc.returncode)
        return RunResult(returncode=proc.returncode, stdout="", stderr="")

    if stream_output:
        # docker/gcloud 는 stderr 로도 진행 로그를 자주 내보내므로 STDOUT 으로 합친다.
        try:
            proc2 = subprocess.Popen(  # noqa: S603
                list(spec.argv),
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise _not_found(spec) from e

        out_lines: list[str] = []
        try:
            assert proc2.stdout is not None
            for line in proc2.stdout:
                out_lines.append(line)
                sys.stdout.write(line)
                sys.stdout.flush()
            returncode = proc2.wait()
        finally:
            if proc2.stdout is not None:
                proc2.stdout.close()

        output = "".join(out_lines)
        if check and returncode != 0:
            raise _failed(spec, returncode, output.strip())
        return RunResult(returncode=returncode, stdout=output, stderr="")

    # capture 모드 (조용히 돌리고 실패 시 요약)
    try:
        result = subprocess.run(  # noqa: S603
            list(spec.argv),
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
        )
    except FileNotFoundError as e:
        raise _not_found(spec) from e
    except subprocess.TimeoutExpired as e:
        raise _timed_out(spec, timeout) from e

    stdout = result.stdout or ""
    stderr = result.stderr or ""
    if stdout:
        logger.debug("명령 stdout: %s", shorten(stdout.strip(), width=2000))
    if stderr:
        logger.debug("명령 stderr: %s", shorten(stderr.strip(), width=2000))

    if check and result.returncode != 0:
        if stderr.strip():
            raise _failed(spec, result.returncode, stderr.strip(), label="stderr")
        raise _failed(spec, result.returncode, stdout.strip(), label="stdout")

    return RunResult(returncode=result.returncode, stdout=stdout, stderr=stderr)


def dry_run_command(
    spec: CommandSpec,
    *,
    check: bool = True,  # noqa: ARG001
    stream_output: bool = False,  # noqa: ARG001
    interactive: bool = False,  # noqa: ARG001
    timeout: float | None = None,  # noqa: ARG001
) -> RunResult:
    """
    --dry-run 용 runner. 명령을 출력만 하고 성공으로 간주한다.
    """
    logger.info("[dry-run] %s", spec.display())
    return RunResult(returncode=0, stdout="", stderr="")

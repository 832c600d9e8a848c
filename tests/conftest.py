"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 webui_deploy 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.
테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.

외부 명령은 FakeRunner 로 대체한다. 실제 docker/gcloud 는 호출되지 않는다.
"""

from __future__ import annotations

import os
import sys
from typing import Callable, Dict, List, Optional

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


class FakeRunner:
    """
    호출된 CommandSpec 과 키워드 인자를 기록한다.

    responses: argv 앞부분(예: ("docker", "image", "inspect")) → RunResult 를 만드는 (returncode, stdout)
    fail_on  : 해당 argv 앞부분이 오면 check=True 일 때 CommandError
    """

    def __init__(self) -> None:
        from webui_deploy.subprocess_utils import RunResult

        self._result_cls = RunResult
        self.calls: List = []
        self.kwargs: List[dict] = []
        self.responses: Dict[tuple, tuple] = {}
        self.fail_on: Dict[tuple, int] = {}
        self.on_call: Optional[Callable] = None

    def _match(self, table: dict, argv: tuple):  # noqa: ANN202
        for prefix, value in table.items():
            if argv[: len(prefix)] == prefix:
                return value
        return None

    def __call__(self, spec, *, check: bool = True, **kwargs):  # noqa: ANN001, ANN204
        from webui_deploy.subprocess_utils import CommandError

        self.calls.append(spec)
        self.kwargs.append(dict(check=check, **kwargs))
        if self.on_call is not None:
            self.on_call(spec)

        code = self._match(self.fail_on, spec.argv)
        if code is not None:
            if check:
                raise CommandError(f"명령 실행 실패: {spec.display()} (exit={code})", returncode=code)
            return self._result_cls(returncode=code, stdout="", stderr="")

        response = self._match(self.responses, spec.argv)
        if response is not None:
            returncode, stdout = response
            return self._result_cls(returncode=returncode, stdout=stdout, stderr="")
        return self._result_cls(returncode=0, stdout="", stderr="")

    def argvs(self) -> List[tuple]:
        return [c.argv for c in self.calls]

    def programs(self) -> List[str]:
        return [" ".join(c.argv[:2]) for c in self.calls]


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def _clean_secret_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OPENAI_API_KEY", "WEBUI_SECRET_KEY", "DOCKER_HUB_USERNAME", "GCP_PROJECT_ID"):
        # setenv 후 delenv: .env 로드로 생긴 값도 테스트 종료 시 원래 상태로 되돌린다.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

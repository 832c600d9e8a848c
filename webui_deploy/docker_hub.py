"""
docker_hub
----------

로컬 이미지를 Docker Hub 로 태그/푸시하는 모듈.
"""

from __future__ import annotations

from .commands import compose_login, compose_push, compose_tag
from .config import PushOptions
from .docker_local import ensure_image
from .logging_utils import get_logger
from .subprocess_utils import Runner, run_command


logger = get_logger(__name__)


def push_image(opts: PushOptions, *, runner: Runner = run_command) -> str:
    """
    username 검증 → 로컬 이미지 확인 → (login) → tag → push.
    푸시된 원격 참조(user/repo:tag)를 반환한다.
    """
    opts.validate()
    ensure_image(opts.local_ref, runner=runner)

    if not opts.skip_login:
        logger.info("Docker Hub 로그인: %s (비밀번호를 입력하세요)", opts.username)
        runner(compose_login(opts.username), interactive=True)

    remote = opts.remote_ref
    logger.info("이미지 태그: %s -> %s", opts.local_ref, remote)
    runner(compose_tag(opts.local_ref, remote))

    logger.info("Docker Hub 로 푸시합니다. 네트워크 상황에 따라 시간이 걸릴 수 있습니다.")
    runner(compose_push(remote), stream_output=True)
    return remote

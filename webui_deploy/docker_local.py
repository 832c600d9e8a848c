"""
docker_local
------------

빌드된 이미지를 로컬 Docker 컨테이너로 실행하는 모듈.
"""

from __future__ import annotations

from .commands import (
    compose_image_inspect,
    compose_list_containers,
    compose_remove,
    compose_run,
    compose_stop,
)
from .config import DeployOptions
from .logging_utils import get_logger
from .subprocess_utils import Runner, run_command


logger = get_logger(__name__)


class ImageNotFoundError(RuntimeError):
    pass


def image_exists(image_ref: str, *, runner: Runner = run_command) -> bool:
    result = runner(compose_image_inspect(image_ref), check=False)
    return result.returncode == 0


def ensure_image(image_ref: str, *, runner: Runner = run_command) -> None:
    """
    로컬 이미지가 없으면 ImageNotFoundError. 이후 단계(run/push)는 실행되지 않는다.
    """
    if not image_exists(image_ref, runner=runner):
        raise ImageNotFoundError(
            f"이미지 {image_ref} 을(를) 찾을 수 없습니다. 먼저 `deploy-webui build` 로 이미지를 빌드하세요."
        )


def remove_existing_container(container_name: str, *, runner: Runner = run_command) -> bool:
    """
    같은 이름의 컨테이너가 있으면 중지/삭제한다. 실패는 무시한다.
    컨테이너를 발견했는지 여부를 반환한다.
    """
    listing = runner(compose_list_containers(), check=False)
    names = {line.strip() for line in listing.stdout.splitlines()}
    if container_name not in names:
        return False

    logger.info("기존 컨테이너를 중지/삭제합니다: %s", container_name)
    for spec in (compose_stop(container_name), compose_remove(container_name)):
        result = runner(spec, check=False)
        if result.returncode != 0:
            logger.debug("무시된 실패: %s (exit=%s)", spec.display(), result.returncode)
    return True


def deploy_container(opts: DeployOptions, *, runner: Runner = run_command) -> str:
    """
    이미지 존재 확인 → 기존 컨테이너 정리 → docker run.
    접속 URL 을 반환한다.
    """
    ensure_image(opts.image_ref, runner=runner)

    logger.info("컨테이너 시작: %s", opts.container_name)
    remove_existing_container(opts.container_name, runner=runner)

    if opts.api_key:
        logger.info("제공된 OpenAI API 키를 사용합니다.")
    if opts.secret_key:
        logger.info("제공된 WebUI secret key 를 사용합니다.")
    if opts.use_ollama:
        logger.info("Ollama 연동을 위해 host 네트워크를 사용합니다.")

    runner(compose_run(opts))
    return f"http://localhost:{opts.port}"

"""
docker_build
------------

Open WebUI 이미지 로컬 빌드를 담당하는 모듈.

upstream Dockerfile 의 `--platform=$BUILDPLATFORM` 은 일부 빌더에서 해석되지 않으므로,
임시 사본에서 구체적인 플랫폼 문자열로 바꾼 뒤 빌드한다. 원본 Dockerfile 은 건드리지 않는다.
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from typing import Iterator

from .commands import compose_build, rewrite_platform
from .config import BuildOptions
from .logging_utils import get_logger
from .subprocess_utils import Runner, run_command


logger = get_logger(__name__)


class DockerfileNotFoundError(RuntimeError):
    pass


@contextmanager
def temporary_dockerfile(source: str, platform: str, directory: str | None = None) -> Iterator[str]:
    """
    source 를 복사하고 플랫폼 자리표시자를 치환한 임시 Dockerfile 경로를 돌려준다.
    with 블록을 어떻게 빠져나가든 (성공/예외) 임시 파일은 삭제된다.
    """
    if not os.path.isfile(source):
        raise DockerfileNotFoundError(
            f"Dockerfile 을 찾을 수 없습니다: {source} (Open WebUI 소스 루트에서 실행하거나 --dockerfile 을 지정하세요)"
        )

    with open(source, "r", encoding="utf-8") as f:
        content = rewrite_platform(f.read(), platform)

    target_dir = directory if directory is not None else os.path.dirname(os.path.abspath(source))
    fd, path = tempfile.mkstemp(prefix="Dockerfile.", suffix=".temp", dir=target_dir)
    logger.info("임시 Dockerfile 생성: %s", path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        yield path
    finally:
        logger.info("임시 Dockerfile 정리: %s", path)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def build_image(opts: BuildOptions, *, runner: Runner = run_command) -> str:
    """
    docker build 를 실행하고 만들어진 이미지 참조(name:tag)를 반환한다.
    """
    dockerfile = opts.dockerfile
    if not os.path.isabs(dockerfile):
        dockerfile = os.path.join(opts.context_dir, dockerfile)

    logger.info("Docker 이미지 빌드: %s", opts.image_ref)
    with temporary_dockerfile(dockerfile, opts.platform, directory=opts.context_dir) as temp_path:
        spec = compose_build(opts, temp_path)
        runner(spec, stream_output=True)

    logger.info("Docker 이미지 빌드 완료: %s", opts.image_ref)
    return opts.image_ref

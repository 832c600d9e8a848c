"""
cloudrun_image
--------------

Cloud Run 용 경량 이미지 빌드.

- CUDA/Ollama 비활성화, 단일 uvicorn worker
- 패키지에 포함된 템플릿(Dockerfile.cloudrun, cloudrun-start.sh)을 빌드 컨텍스트에 쓴 뒤 빌드한다.
- start 스크립트는 WEBUI_SECRET_KEY 가 없으면 .webui_secret_key 파일에서 읽거나 새로 생성한다.
"""

from __future__ import annotations

import os
import stat
from importlib import resources
from typing import Callable, List, Optional

from .commands import compose_cloudrun_build, compose_push, compose_tag
from .config import CloudRunImageOptions
from .logging_utils import get_logger
from .subprocess_utils import Runner, run_command


logger = get_logger(__name__)


TEMPLATE_PACKAGE = "webui_deploy.templates"
DOCKERFILE_NAME = "Dockerfile.cloudrun"
START_SCRIPT_NAME = "cloudrun-start.sh"


def read_template(name: str) -> str:
    return resources.files(TEMPLATE_PACKAGE).joinpath(name).read_text(encoding="utf-8")


def write_templates(context_dir: str) -> List[str]:
    """
    템플릿을 빌드 컨텍스트에 쓴다. 기존 파일은 덮어쓴다.
    Dockerfile.cloudrun 이 cloudrun-start.sh 를 COPY 하므로 두 파일 모두 컨텍스트에 있어야 한다.
    """
    written: List[str] = []
    for name in (START_SCRIPT_NAME, DOCKERFILE_NAME):
        target = os.path.join(context_dir, name)
        with open(target, "w", encoding="utf-8") as f:
            f.write(read_template(name))
        written.append(target)

    script = os.path.join(context_dir, START_SCRIPT_NAME)
    mode = os.stat(script).st_mode
    os.chmod(script, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info("Cloud Run 템플릿 생성: %s", ", ".join(written))
    return written


def build_cloudrun_image(
    opts: CloudRunImageOptions,
    *,
    runner: Runner = run_command,
    confirm: Optional[Callable[[str], bool]] = None,
) -> Optional[str]:
    """
    템플릿 생성 → docker build → (username 이 있으면) 태그 → (선택) 푸시.

    opts.push 가 None 이면 confirm 콜백으로 푸시 여부를 묻는다.
    opts.push 가 True 인데 username 이 없으면 docker 를 호출하기 전에 ConfigError 를 던진다.
    푸시된 원격 참조를 반환하고, 푸시하지 않았으면 None.
    """
    opts.validate()

    write_templates(opts.context_dir)

    dockerfile = os.path.join(opts.context_dir, DOCKERFILE_NAME)
    logger.info("Cloud Run 최적화 이미지 빌드: %s", opts.image_ref)
    runner(compose_cloudrun_build(opts, dockerfile), stream_output=True)

    remote = opts.remote_ref
    if remote is None:
        logger.info("Docker Hub username 이 없어 태그/푸시를 건너뜁니다.")
        return None

    logger.info("Docker Hub 용 태그: %s", remote)
    runner(compose_tag(opts.image_ref, remote))

    should_push = opts.push
    if should_push is None:
        should_push = bool(confirm and confirm("Docker Hub 로 이미지를 푸시할까요?"))
    if not should_push:
        return None

    runner(compose_push(remote), stream_output=True)
    logger.info("푸시 완료: %s", remote)
    return remote


def deploy_instructions(image: str) -> str:
    lines = [
        "===== Cloud Run Deployment Instructions =====",
        "Deploy to Cloud Run with:",
        "",
        "gcloud run deploy truly-open-webui \\",
        f"  --image {image} \\",
        "  --platform managed \\",
        "  --region us-central1 \\",
        "  --memory 2Gi \\",
        "  --cpu 1 \\",
        "  --timeout 600s \\",
        "  --allow-unauthenticated",
        "",
        "If you need to specify API keys, add:",
        '  --set-env-vars="OPENAI_API_KEY=your_key,WEBUI_SECRET_KEY=your_secret"',
        "",
        "Or use this tool:",
        f"deploy-webui cloud-run --project YOUR_PROJECT_ID --image {image}",
    ]
    return "\n".join(lines)

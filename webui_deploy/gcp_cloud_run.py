"""
gcp_cloud_run
-------------

Cloud Run 서비스 배포 책임을 가지는 모듈.
"""

from __future__ import annotations

from . import gcp_project
from .commands import compose_cloud_run_deploy
from .config import CloudRunOptions
from .logging_utils import get_logger
from .subprocess_utils import Runner, run_command


logger = get_logger(__name__)


def deploy_service(opts: CloudRunOptions, *, runner: Runner = run_command) -> None:
    """
    프로젝트 설정 → 필수 API enable → gcloud run deploy.

    project_id 가 비어 있으면 gcloud 를 호출하기 전에 ConfigError 를 던진다.
    """
    opts.validate()

    gcp_project.set_active_project(opts.project_id, runner=runner)
    gcp_project.enable_required_apis(runner=runner)

    logger.info("Cloud Run 서비스 배포: service=%s image=%s", opts.service_name, opts.image)
    runner(compose_cloud_run_deploy(opts), stream_output=True)


def describe_hint(opts: CloudRunOptions) -> str:
    return f"gcloud run services describe {opts.service_name} --region {opts.region}"

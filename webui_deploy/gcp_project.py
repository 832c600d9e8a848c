"""
gcp_project
-----------

배포 대상 GCP 프로젝트 선택과 필수 API enable 을 담당하는 모듈.
"""

from __future__ import annotations

from typing import Sequence

from .commands import REQUIRED_CLOUD_RUN_APIS, compose_enable_services, compose_set_project
from .logging_utils import get_logger
from .subprocess_utils import Runner, run_command


logger = get_logger(__name__)


def set_active_project(project_id: str, *, runner: Runner = run_command) -> None:
    """
    gcloud 의 활성 프로젝트를 project_id 로 바꾼다.
    """
    logger.info("GCP 프로젝트 설정: %s", project_id)
    runner(compose_set_project(project_id))


def enable_required_apis(
    apis: Sequence[str] = tuple(REQUIRED_CLOUD_RUN_APIS),
    *,
    runner: Runner = run_command,
) -> None:
    """
    Cloud Run 배포에 필요한 API 들을 enable 한다. 이미 켜져 있으면 gcloud 가 그대로 성공한다.
    """
    logger.info("다음 API 들이 활성화되어 있어야 합니다: %s", list(apis))
    if not apis:
        return
    runner(compose_enable_services(apis), stream_output=True)

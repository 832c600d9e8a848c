from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, List, Tuple

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.infra", ".env.secrets"]

DEFAULT_IMAGE_NAME = "truly-open-webui"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_CONTAINER_NAME = "truly-open-webui"
DEFAULT_LOCAL_PORT = 1001
CONTAINER_PORT = 8080
DATA_MOUNT_PATH = "/app/backend/data"


class ConfigError(ValueError):
    """필수 옵션이 비어 있는 등, 외부 명령을 실행하기 전에 발견된 설정 오류."""


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _require(options: List[Tuple[str, str, str]]) -> None:
    # (값, 옵션 이름, 환경변수 이름)
    missing = [f"{flag} ({envvar})" for value, flag, envvar in options if not value]
    if missing:
        raise ConfigError("필수 옵션이 누락되었습니다: " + ", ".join(missing))


@dataclass(frozen=True)
class BuildOptions:
    image_name: str = DEFAULT_IMAGE_NAME
    image_tag: str = DEFAULT_IMAGE_TAG
    use_cuda: bool = False
    use_ollama: bool = False
    cuda_version: str = "cu121"
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    reranking_model: str = ""

    dockerfile: str = "Dockerfile"
    context_dir: str = "."
    platform: str = "linux/amd64"

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    def summary_lines(self) -> List[str]:
        return [
            f"Image name:       {self.image_ref}",
            f"CUDA enabled:     {str(self.use_cuda).lower()}",
            f"Ollama included:  {str(self.use_ollama).lower()}",
            f"CUDA version:     {self.cuda_version}",
            f"Embedding model:  {self.embedding_model}",
            f"Reranking model:  {self.reranking_model}",
        ]


@dataclass(frozen=True)
class DeployOptions:
    image_name: str = DEFAULT_IMAGE_NAME
    image_tag: str = DEFAULT_IMAGE_TAG
    port: int = DEFAULT_LOCAL_PORT
    container_name: str = DEFAULT_CONTAINER_NAME
    use_ollama: bool = False

    # 비밀값은 repr/로그에 남지 않도록 한다.
    api_key: str = field(default="", repr=False)
    secret_key: str = field(default="", repr=False)

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    @property
    def volume(self) -> str:
        return f"{self.container_name}-data:{DATA_MOUNT_PATH}"

    def summary_lines(self) -> List[str]:
        return [
            f"Image:              {self.image_ref}",
            f"Container name:     {self.container_name}",
            f"Port:               {self.port}",
            f"Ollama enabled:     {str(self.use_ollama).lower()}",
            f"OpenAI API key:     {'provided' if self.api_key else 'not set'}",
            f"WebUI secret key:   {'provided' if self.secret_key else 'not set'}",
        ]


@dataclass(frozen=True)
class PushOptions:
    username: str = ""
    repository: str = DEFAULT_IMAGE_NAME
    tag: str = DEFAULT_IMAGE_TAG
    local_image: str = DEFAULT_IMAGE_NAME
    local_tag: str = DEFAULT_IMAGE_TAG
    skip_login: bool = False

    @property
    def local_ref(self) -> str:
        return f"{self.local_image}:{self.local_tag}"

    @property
    def remote_ref(self) -> str:
        return f"{self.username}/{self.repository}:{self.tag}"

    def validate(self) -> None:
        _require([(self.username, "--username", "DOCKER_HUB_USERNAME")])

    def summary_lines(self) -> List[str]:
        return [
            f"Local image:          {self.local_ref}",
            f"Docker Hub username:  {self.username}",
            f"Docker Hub repo:      {self.repository}",
            f"Docker Hub tag:       {self.tag}",
        ]


@dataclass(frozen=True)
class CloudRunOptions:
    project_id: str = ""
    region: str = "us-central1"
    service_name: str = "truly-open-webui"
    image: str = "thomasthemaker/truly-open-webui:latest"
    port: int = CONTAINER_PORT
    cpu: str = "2"
    memory: str = "4Gi"
    min_instances: int = 0
    max_instances: int = 10
    concurrency: int = 80
    timeout: str = "300s"
    # 반복 입력된 --env KEY=VALUE 를 입력 순서 그대로 보관 (중복 제거 없음)
    env_vars: Tuple[str, ...] = field(default=(), repr=False)
    cloudsql_instances: str = ""
    vpc_connector: str = ""
    ingress: str = "all"
    authenticate: bool = False
    service_account: str = ""

    def validate(self) -> None:
        _require([(self.project_id, "--project", "GCP_PROJECT_ID")])

    def summary_lines(self) -> List[str]:
        return [
            f"Project ID:             {self.project_id}",
            f"Region:                 {self.region}",
            f"Service name:           {self.service_name}",
            f"Image:                  {self.image}",
            f"Port:                   {self.port}",
            f"CPU:                    {self.cpu}",
            f"Memory:                 {self.memory}",
            f"Min instances:          {self.min_instances}",
            f"Max instances:          {self.max_instances}",
            f"Concurrency:            {self.concurrency}",
            f"Timeout:                {self.timeout}",
            f"Authentication:         {'Required' if self.authenticate else 'Public'}",
        ]


@dataclass(frozen=True)
class CloudRunImageOptions:
    image_name: str = DEFAULT_IMAGE_NAME
    image_tag: str = "cloudrun"
    embedding_model: str = "BAAI/bge-small-en-v1.5"
    username: str = ""
    # None 이면 푸시 여부를 사용자에게 묻는다.
    push: Optional[bool] = None
    context_dir: str = "."

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    @property
    def remote_ref(self) -> Optional[str]:
        if not self.username:
            return None
        return f"{self.username}/{self.image_name}:{self.image_tag}"

    def validate(self) -> None:
        # --push 는 Docker Hub 네임스페이스 없이는 수행할 수 없다.
        if self.push:
            _require([(self.username, "--username", "DOCKER_HUB_USERNAME")])

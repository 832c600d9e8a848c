"""
commands
--------

옵션 dataclass 를 외부 명령(docker / gcloud) 인자 목록으로 변환하는 순수 함수 모음.

여기 있는 함수들은 아무것도 실행하지 않는다. 실행은 subprocess_utils 의 runner 가 담당하므로,
조립 결과만으로 플래그 순서/기본값/조건부 절을 검증할 수 있다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence

from .config import (
    CONTAINER_PORT,
    BuildOptions,
    CloudRunImageOptions,
    CloudRunOptions,
    DeployOptions,
)
from .logging_utils import redact_argv


PLATFORM_PLACEHOLDER = "--platform=$BUILDPLATFORM"

REQUIRED_CLOUD_RUN_APIS = [
    "cloudbuild.googleapis.com",
    "run.googleapis.com",
    "artifactregistry.googleapis.com",
]


@dataclass(frozen=True)
class CommandSpec:
    """
    외부 프로세스 한 번의 호출.

    argv: 프로그램 이름을 포함한 인자 목록 (순서 그대로 실행된다)
    env : 자식 프로세스에 추가로 넘길 환경변수. 비밀값은 argv 대신 여기로 전달한다.
    """

    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def of(cls, *argv: str, env: Mapping[str, str] | None = None) -> "CommandSpec":
        return cls(argv=tuple(str(a) for a in argv), env=dict(env or {}))

    @property
    def program(self) -> str:
        return self.argv[0]

    def display(self) -> str:
        return redact_argv(self.argv)


def _bool_arg(value: bool) -> str:
    return "true" if value else "false"


# -----------------------------
# docker build
# -----------------------------
def build_args(opts: BuildOptions) -> List[str]:
    pairs = [
        ("USE_CUDA", _bool_arg(opts.use_cuda)),
        ("USE_OLLAMA", _bool_arg(opts.use_ollama)),
        ("USE_CUDA_VER", opts.cuda_version),
        ("USE_EMBEDDING_MODEL", opts.embedding_model),
        ("USE_RERANKING_MODEL", opts.reranking_model),
    ]
    args: List[str] = []
    for name, value in pairs:
        args += ["--build-arg", f"{name}={value}"]
    return args


def compose_build(opts: BuildOptions, dockerfile: str) -> CommandSpec:
    """
    dockerfile 은 플랫폼 치환이 끝난 임시 사본의 경로.
    """
    return CommandSpec.of(
        "docker",
        "build",
        *build_args(opts),
        "-t",
        opts.image_ref,
        "-f",
        dockerfile,
        opts.context_dir,
    )


def rewrite_platform(text: str, platform: str) -> str:
    # 정확히 이 문자열만 바꾼다. 다른 형태의 플랫폼 표기는 건드리지 않는다.
    return text.replace(PLATFORM_PLACEHOLDER, f"--platform={platform}")


def compose_cloudrun_build(opts: CloudRunImageOptions, dockerfile: str) -> CommandSpec:
    return CommandSpec.of(
        "docker",
        "build",
        "--build-arg",
        f"USE_EMBEDDING_MODEL={opts.embedding_model}",
        "-t",
        opts.image_ref,
        "-f",
        dockerfile,
        opts.context_dir,
    )


# -----------------------------
# 로컬 docker 실행
# -----------------------------
def compose_image_inspect(image_ref: str) -> CommandSpec:
    return CommandSpec.of("docker", "image", "inspect", image_ref)


def compose_list_containers() -> CommandSpec:
    return CommandSpec.of("docker", "ps", "-a", "--format", "{{.Names}}")


def compose_stop(container_name: str) -> CommandSpec:
    return CommandSpec.of("docker", "stop", container_name)


def compose_remove(container_name: str) -> CommandSpec:
    return CommandSpec.of("docker", "rm", container_name)


def secret_env(opts: DeployOptions) -> Dict[str, str]:
    """
    값이 비어 있지 않은 비밀값만 골라낸다. (입력 순서: API 키 → 시크릿 키)
    """
    env: Dict[str, str] = {}
    if opts.api_key:
        env["OPENAI_API_KEY"] = opts.api_key
    if opts.secret_key:
        env["WEBUI_SECRET_KEY"] = opts.secret_key
    return env


def compose_run(opts: DeployOptions) -> CommandSpec:
    argv: List[str] = [
        "docker",
        "run",
        "-d",
        "--name",
        opts.container_name,
        "-p",
        f"{opts.port}:{CONTAINER_PORT}",
    ]

    env = secret_env(opts)
    # `-e NAME` 만 넘기면 docker 가 자신의 환경에서 값을 읽는다. argv 에는 값이 남지 않는다.
    for name in env:
        argv += ["-e", name]

    if opts.use_ollama:
        argv += ["--network", "host"]

    argv += ["-v", opts.volume, opts.image_ref]
    return CommandSpec.of(*argv, env=env)


# -----------------------------
# Docker Hub
# -----------------------------
def compose_login(username: str) -> CommandSpec:
    return CommandSpec.of("docker", "login", "-u", username)


def compose_tag(source_ref: str, target_ref: str) -> CommandSpec:
    return CommandSpec.of("docker", "tag", source_ref, target_ref)


def compose_push(target_ref: str) -> CommandSpec:
    return CommandSpec.of("docker", "push", target_ref)


# -----------------------------
# Cloud Run
# -----------------------------
def join_env_vars(env_vars: Iterable[str], port: int) -> str:
    """
    --env 로 받은 값들을 입력 순서대로, 마지막에 PORT 를 붙여 쉼표로 잇는다.
    """
    items = [v for v in env_vars if v]
    items.append(f"PORT={port}")
    return ",".join(items)


def compose_set_project(project_id: str) -> CommandSpec:
    return CommandSpec.of("gcloud", "config", "set", "project", project_id)


def compose_enable_services(apis: Sequence[str] = tuple(REQUIRED_CLOUD_RUN_APIS)) -> CommandSpec:
    return CommandSpec.of("gcloud", "services", "enable", *apis)


def compose_cloud_run_deploy(opts: CloudRunOptions) -> CommandSpec:
    argv: List[str] = [
        "gcloud",
        "run",
        "deploy",
        opts.service_name,
        "--image",
        opts.image,
        "--platform",
        "managed",
        "--region",
        opts.region,
        "--port",
        str(opts.port),
        "--cpu",
        str(opts.cpu),
        "--memory",
        opts.memory,
        "--min-instances",
        str(opts.min_instances),
        "--max-instances",
        str(opts.max_instances),
        "--concurrency",
        str(opts.concurrency),
        "--timeout",
        opts.timeout,
        "--ingress",
        opts.ingress,
    ]

    env_vars = join_env_vars(opts.env_vars, opts.port)
    if env_vars:
        argv.append(f"--set-env-vars={env_vars}")

    if opts.cloudsql_instances:
        argv.append(f"--set-cloudsql-instances={opts.cloudsql_instances}")

    if opts.vpc_connector:
        argv += ["--vpc-connector", opts.vpc_connector]

    if opts.service_account:
        argv += ["--service-account", opts.service_account]

    if not opts.authenticate:
        argv.append("--allow-unauthenticated")

    return CommandSpec.of(*argv)

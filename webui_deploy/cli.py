import sys
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

import click

from .cloudrun_image import build_cloudrun_image, deploy_instructions
from .config import (
    CONTAINER_PORT,
    DEFAULT_CONTAINER_NAME,
    DEFAULT_IMAGE_NAME,
    DEFAULT_IMAGE_TAG,
    DEFAULT_LOCAL_PORT,
    BuildOptions,
    CloudRunImageOptions,
    CloudRunOptions,
    ConfigError,
    DeployOptions,
    PushOptions,
    load_env_files,
)
from .docker_build import DockerfileNotFoundError, build_image
from .docker_hub import push_image
from .docker_local import ImageNotFoundError, deploy_container
from .gcp_cloud_run import deploy_service, describe_hint
from .logging_utils import get_logger, setup_logging
from .subprocess_utils import CommandError, Runner, dry_run_command, run_command


logger = get_logger(__name__)


class DeployGroup(click.Group):
    """
    사용법 오류(알 수 없는 옵션, 값 누락 등)를 click 기본값 2 대신 exit 1 로 끝낸다.
    """

    def make_context(self, info_name, args, parent=None, **extra):  # noqa: ANN001
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.exit_code = 1
            raise

    def invoke(self, ctx: click.Context):  # noqa: ANN201
        # 하위 명령의 인자 파싱도 여기서 일어난다.
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            e.exit_code = 1
            raise


def _fail(message: str, code: int = 1) -> None:
    click.echo(f"[ERROR] {message}", err=True)
    sys.exit(code)


@contextmanager
def _handle_errors(action: str) -> Iterator[None]:
    try:
        yield
    except ConfigError as e:
        _fail(f"설정 오류: {e}")
    except (ImageNotFoundError, DockerfileNotFoundError) as e:
        _fail(str(e))
    except CommandError as e:
        logger.debug("%s 중 외부 명령 실패", action, exc_info=True)
        _fail(f"{action} 실패: {e}", e.exit_status)


def _runner(ctx: click.Context) -> Runner:
    return ctx.obj["runner"]


def _banner(title: str, lines: list[str]) -> None:
    click.echo(f"===== {title} =====")
    for line in lines:
        click.echo(line)
    click.echo("=" * (len(title) + 12))


def _validate_env(ctx: click.Context, param: click.Parameter, value: Tuple[str, ...]) -> Tuple[str, ...]:  # noqa: ARG001
    for item in value:
        if "=" not in item:
            raise click.BadParameter(f"KEY=VALUE 형식이어야 합니다: {item!r}")
    return value


@click.group(cls=DeployGroup, context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리. .env 파일과 기본 빌드 컨텍스트의 기준 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="명령을 실행하지 않고 조립된 명령만 출력합니다.",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int, dry_run: bool) -> None:
    """Truly Open WebUI 이미지 빌드 / Docker Hub 푸시 / 로컬 및 Cloud Run 배포 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj.setdefault("runner", dry_run_command if dry_run else run_command)

    # 하위 명령의 envvar 옵션(OPENAI_API_KEY 등)이 해석되기 전에 .env 파일을 올린다.
    load_env_files(chdir)


def _secret_options(f):  # noqa: ANN001, ANN202
    f = click.option(
        "--secret-key",
        envvar="WEBUI_SECRET_KEY",
        default="",
        show_envvar=True,
        help="WebUI secret key (비어 있으면 주입하지 않음)",
    )(f)
    f = click.option(
        "--api-key",
        envvar="OPENAI_API_KEY",
        default="",
        show_envvar=True,
        help="OpenAI API key (비어 있으면 주입하지 않음)",
    )(f)
    return f


@main.command()
@click.option("-n", "--name", "image_name", default=DEFAULT_IMAGE_NAME, show_default=True, help="Docker 이미지 이름")
@click.option("-t", "--tag", "image_tag", default=DEFAULT_IMAGE_TAG, show_default=True, help="Docker 이미지 태그")
@click.option("-c", "--cuda", "use_cuda", is_flag=True, help="CUDA 지원 활성화")
@click.option("-o", "--ollama", "use_ollama", is_flag=True, help="Ollama 포함 빌드")
@click.option("--cuda-version", default="cu121", show_default=True, help="CUDA 버전")
@click.option(
    "--embedding-model",
    default="sentence-transformers/all-MiniLM-L6-v2",
    show_default=True,
    help="임베딩 모델",
)
@click.option("--reranking-model", default="", help="리랭킹 모델")
@click.option("--dockerfile", default="Dockerfile", show_default=True, help="빌드 정의 파일 (컨텍스트 기준 상대 경로)")
@click.option(
    "--context",
    "context_dir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=None,
    help="빌드 컨텍스트 (기본: --chdir)",
)
@click.option("--platform", default="linux/amd64", show_default=True, help="$BUILDPLATFORM 대신 쓸 플랫폼")
@click.option("-r", "--run", "run_after", is_flag=True, help="빌드 후 컨테이너 실행")
@click.option("-p", "--port", type=int, default=DEFAULT_LOCAL_PORT, show_default=True, help="--run 시 노출 포트")
@click.option("--container-name", default=DEFAULT_CONTAINER_NAME, show_default=True, help="--run 시 컨테이너 이름")
@_secret_options
@click.pass_context
def build(
    ctx: click.Context,
    image_name: str,
    image_tag: str,
    use_cuda: bool,
    use_ollama: bool,
    cuda_version: str,
    embedding_model: str,
    reranking_model: str,
    dockerfile: str,
    context_dir: Optional[str],
    platform: str,
    run_after: bool,
    port: int,
    container_name: str,
    api_key: str,
    secret_key: str,
) -> None:
    """Open WebUI Docker 이미지를 빌드 (--run 이면 빌드 후 실행)"""
    opts = BuildOptions(
        image_name=image_name,
        image_tag=image_tag,
        use_cuda=use_cuda,
        use_ollama=use_ollama,
        cuda_version=cuda_version,
        embedding_model=embedding_model,
        reranking_model=reranking_model,
        dockerfile=dockerfile,
        context_dir=context_dir or ctx.obj["chdir"],
        platform=platform,
    )
    _banner("Truly Open WebUI Docker Build", opts.summary_lines() + [f"Deploy after:     {str(run_after).lower()}"])

    runner = _runner(ctx)
    with _handle_errors("빌드"):
        image_ref = build_image(opts, runner=runner)
    click.echo(f"Docker image built successfully: {image_ref}")

    if not run_after:
        click.echo("To deploy this image, run: deploy-webui deploy")
        return

    deploy_opts = DeployOptions(
        image_name=image_name,
        image_tag=image_tag,
        port=port,
        container_name=container_name,
        use_ollama=use_ollama,
        api_key=api_key,
        secret_key=secret_key,
    )
    with _handle_errors("배포"):
        url = deploy_container(deploy_opts, runner=runner)
    _echo_container_hints(deploy_opts, url)


def _echo_container_hints(opts: DeployOptions, url: str) -> None:
    click.echo("Container started successfully!")
    click.echo(f"You can access Truly Open WebUI at: {url}")
    click.echo(f"To view logs: docker logs {opts.container_name}")
    click.echo(f"To stop container: docker stop {opts.container_name}")


@main.command()
@click.option("-n", "--name", "image_name", default=DEFAULT_IMAGE_NAME, show_default=True, help="배포할 Docker 이미지 이름")
@click.option("-t", "--tag", "image_tag", default=DEFAULT_IMAGE_TAG, show_default=True, help="배포할 Docker 이미지 태그")
@click.option("-p", "--port", type=int, default=DEFAULT_LOCAL_PORT, show_default=True, help="노출 포트")
@click.option("--container-name", default=DEFAULT_CONTAINER_NAME, show_default=True, help="컨테이너 이름")
@click.option("-o", "--ollama", "use_ollama", is_flag=True, help="Ollama 연동용 host 네트워크 사용")
@_secret_options
@click.pass_context
def deploy(
    ctx: click.Context,
    image_name: str,
    image_tag: str,
    port: int,
    container_name: str,
    use_ollama: bool,
    api_key: str,
    secret_key: str,
) -> None:
    """로컬 이미지를 Docker 컨테이너로 실행"""
    opts = DeployOptions(
        image_name=image_name,
        image_tag=image_tag,
        port=port,
        container_name=container_name,
        use_ollama=use_ollama,
        api_key=api_key,
        secret_key=secret_key,
    )
    _banner("Truly Open WebUI Docker Deployment", opts.summary_lines())

    with _handle_errors("배포"):
        url = deploy_container(opts, runner=_runner(ctx))
    _echo_container_hints(opts, url)


@main.command()
@click.option("-u", "--username", envvar="DOCKER_HUB_USERNAME", default="", show_envvar=True, help="Docker Hub username (필수)")
@click.option("-r", "--repo", "repository", default=DEFAULT_IMAGE_NAME, show_default=True, help="Docker Hub 리포지토리")
@click.option("-t", "--tag", default=DEFAULT_IMAGE_TAG, show_default=True, help="Docker Hub 태그")
@click.option("--local-image", default=DEFAULT_IMAGE_NAME, show_default=True, help="로컬 이미지 이름")
@click.option("--local-tag", default=DEFAULT_IMAGE_TAG, show_default=True, help="로컬 이미지 태그")
@click.option("--skip-login", is_flag=True, help="이미 로그인되어 있으면 docker login 을 건너뜀")
@click.pass_context
def push(
    ctx: click.Context,
    username: str,
    repository: str,
    tag: str,
    local_image: str,
    local_tag: str,
    skip_login: bool,
) -> None:
    """로컬 이미지를 Docker Hub 로 푸시"""
    opts = PushOptions(
        username=username,
        repository=repository,
        tag=tag,
        local_image=local_image,
        local_tag=local_tag,
        skip_login=skip_login,
    )
    with _handle_errors("푸시"):
        opts.validate()
        _banner("Docker Hub Push Configuration", opts.summary_lines())
        remote = push_image(opts, runner=_runner(ctx))

    click.echo("Success! Your image is now available at Docker Hub as:")
    click.echo(remote)
    click.echo("")
    click.echo("You can pull this image on any machine with:")
    click.echo(f"docker pull {remote}")


@main.command(name="cloud-run")
@click.option("-p", "--project", "project_id", envvar="GCP_PROJECT_ID", default="", show_envvar=True, help="GCP 프로젝트 ID (필수)")
@click.option("-r", "--region", default="us-central1", show_default=True, help="GCP 리전")
@click.option("-n", "--name", "service_name", default="truly-open-webui", show_default=True, help="Cloud Run 서비스 이름")
@click.option("-i", "--image", default="thomasthemaker/truly-open-webui:latest", show_default=True, help="배포할 이미지")
@click.option("--port", type=int, default=CONTAINER_PORT, show_default=True, help="컨테이너 포트")
@click.option("--cpu", default="2", show_default=True, help="할당 CPU")
@click.option("--memory", default="4Gi", show_default=True, help="할당 메모리")
@click.option("--min-instances", type=int, default=0, show_default=True, help="최소 인스턴스 수")
@click.option("--max-instances", type=int, default=10, show_default=True, help="최대 인스턴스 수")
@click.option("--concurrency", type=int, default=80, show_default=True, help="인스턴스당 동시 요청 수")
@click.option("--timeout", default="300s", show_default=True, help="요청 타임아웃")
@click.option("--env", "env_vars", multiple=True, callback=_validate_env, help="KEY=VALUE 환경변수 (여러 번 사용 가능)")
@click.option("--sql", "cloudsql_instances", default="", help="Cloud SQL 인스턴스 연결 이름")
@click.option("--vpc", "vpc_connector", default="", help="VPC 커넥터 이름")
@click.option("--ingress", default="all", show_default=True, help="Ingress 설정")
@click.option("--service-account", default="", help="서비스 계정 이메일")
@click.option("--authenticate", is_flag=True, help="인증 필요 (기본: public)")
@click.pass_context
def cloud_run(
    ctx: click.Context,
    project_id: str,
    region: str,
    service_name: str,
    image: str,
    port: int,
    cpu: str,
    memory: str,
    min_instances: int,
    max_instances: int,
    concurrency: int,
    timeout: str,
    env_vars: Tuple[str, ...],
    cloudsql_instances: str,
    vpc_connector: str,
    ingress: str,
    service_account: str,
    authenticate: bool,
) -> None:
    """Google Cloud Run 으로 배포"""
    opts = CloudRunOptions(
        project_id=project_id,
        region=region,
        service_name=service_name,
        image=image,
        port=port,
        cpu=cpu,
        memory=memory,
        min_instances=min_instances,
        max_instances=max_instances,
        concurrency=concurrency,
        timeout=timeout,
        env_vars=tuple(env_vars),
        cloudsql_instances=cloudsql_instances,
        vpc_connector=vpc_connector,
        ingress=ingress,
        authenticate=authenticate,
        service_account=service_account,
    )
    with _handle_errors("Cloud Run 배포"):
        opts.validate()
        _banner("Google Cloud Run Configuration", opts.summary_lines())
        deploy_service(opts, runner=_runner(ctx))

    click.echo("")
    click.echo("Deployment complete!")
    click.echo("Your application should now be available at the Cloud Run URL shown above.")
    click.echo("")
    click.echo("To view your service details, run:")
    click.echo(describe_hint(opts))


@main.command(name="build-cloudrun")
@click.option("-n", "--name", "image_name", default=DEFAULT_IMAGE_NAME, show_default=True, help="이미지 이름")
@click.option("-t", "--tag", "image_tag", default="cloudrun", show_default=True, help="이미지 태그")
@click.option("--embedding-model", default="BAAI/bge-small-en-v1.5", show_default=True, help="임베딩 모델")
@click.option("-u", "--username", envvar="DOCKER_HUB_USERNAME", default="", show_envvar=True, help="Docker Hub username (없으면 태그/푸시 생략)")
@click.option("--push/--no-push", "push_image_", default=None, help="Docker Hub 푸시 여부 (생략 시 물어봄)")
@click.option(
    "--context",
    "context_dir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=None,
    help="빌드 컨텍스트 (기본: --chdir)",
)
@click.pass_context
def build_cloudrun(
    ctx: click.Context,
    image_name: str,
    image_tag: str,
    embedding_model: str,
    username: str,
    push_image_: Optional[bool],
    context_dir: Optional[str],
) -> None:
    """Cloud Run 에 맞춘 경량 이미지(CUDA/Ollama 없음)를 빌드"""
    opts = CloudRunImageOptions(
        image_name=image_name,
        image_tag=image_tag,
        embedding_model=embedding_model,
        username=username,
        push=push_image_,
        context_dir=context_dir or ctx.obj["chdir"],
    )
    _banner(
        "Building Cloud Run Optimized Image",
        [
            "- Disabled CUDA (not supported on Cloud Run)",
            "- Disabled Ollama (avoid startup delays)",
            "- Minimal model configuration",
            f"- Image: {opts.image_ref}",
        ],
    )

    with _handle_errors("Cloud Run 이미지 빌드"):
        pushed = build_cloudrun_image(
            opts,
            runner=_runner(ctx),
            confirm=lambda msg: click.confirm(msg, default=False),
        )

    if pushed:
        click.echo(f"Successfully pushed {pushed} to Docker Hub")
    click.echo("")
    click.echo(deploy_instructions(pushed or opts.remote_ref or opts.image_ref))

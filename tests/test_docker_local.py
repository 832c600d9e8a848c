import pytest

from webui_deploy.config import DeployOptions
from webui_deploy.docker_local import ImageNotFoundError, deploy_container, remove_existing_container


def test_deploy_fails_when_image_missing(fake_runner) -> None:
    fake_runner.responses[("docker", "image", "inspect")] = (1, "")

    with pytest.raises(ImageNotFoundError) as excinfo:
        deploy_container(DeployOptions(), runner=fake_runner)

    assert "build" in str(excinfo.value)
    assert fake_runner.argvs() == [("docker", "image", "inspect", "truly-open-webui:latest")]


def test_deploy_port_and_ollama(fake_runner) -> None:
    url = deploy_container(DeployOptions(port=3000, use_ollama=True), runner=fake_runner)

    assert url == "http://localhost:3000"
    run = fake_runner.calls[-1].argv
    assert run[:2] == ("docker", "run")
    assert "-p" in run and "3000:8080" in run
    assert ("--network", "host") == run[run.index("--network"):run.index("--network") + 2]
    assert "OPENAI_API_KEY" not in run


def test_deploy_removes_existing_container(fake_runner) -> None:
    fake_runner.responses[("docker", "ps")] = (0, "other\ntruly-open-webui\n")
    fake_runner.fail_on[("docker", "stop")] = 1

    deploy_container(DeployOptions(), runner=fake_runner)

    programs = fake_runner.programs()
    assert programs == ["docker image", "docker ps", "docker stop", "docker rm", "docker run"]
    # stop/rm 은 실패해도 배포를 막지 않는다
    assert fake_runner.kwargs[2]["check"] is False
    assert fake_runner.kwargs[3]["check"] is False


def test_remove_existing_container_ignores_partial_name_match(fake_runner) -> None:
    fake_runner.responses[("docker", "ps")] = (0, "truly-open-webui-old\n")

    assert remove_existing_container("truly-open-webui", runner=fake_runner) is False
    assert fake_runner.programs() == ["docker ps"]


def test_deploy_injects_secrets_via_env(fake_runner) -> None:
    deploy_container(DeployOptions(api_key="sk-abc"), runner=fake_runner)

    run = fake_runner.calls[-1]
    assert "OPENAI_API_KEY" in run.argv
    assert "WEBUI_SECRET_KEY" not in run.argv
    assert run.env == {"OPENAI_API_KEY": "sk-abc"}

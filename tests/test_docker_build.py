from pathlib import Path

import pytest

from webui_deploy.config import BuildOptions
from webui_deploy.docker_build import DockerfileNotFoundError, build_image, temporary_dockerfile
from webui_deploy.subprocess_utils import CommandError


DOCKERFILE = """\
FROM --platform=$BUILDPLATFORM node:22-alpine3.20 AS build
ARG USE_CUDA=false
FROM python:3.11-slim-bookworm AS base
"""


def _write_dockerfile(tmp_path: Path) -> Path:
    path = tmp_path / "Dockerfile"
    path.write_text(DOCKERFILE, encoding="utf-8")
    return path


def _temp_files(tmp_path: Path) -> list:
    return sorted(p.name for p in tmp_path.iterdir() if p.name.endswith(".temp"))


def test_temporary_dockerfile_rewrites_copy_and_keeps_original(tmp_path: Path) -> None:
    source = _write_dockerfile(tmp_path)

    with temporary_dockerfile(str(source), "linux/amd64") as temp_path:
        content = Path(temp_path).read_text(encoding="utf-8")
        assert "FROM --platform=linux/amd64 node:22-alpine3.20 AS build" in content
        assert Path(temp_path).parent == tmp_path

    assert not Path(temp_path).exists()
    assert source.read_text(encoding="utf-8") == DOCKERFILE


def test_temporary_dockerfile_removed_on_exception(tmp_path: Path) -> None:
    source = _write_dockerfile(tmp_path)

    with pytest.raises(RuntimeError):
        with temporary_dockerfile(str(source), "linux/amd64"):
            raise RuntimeError("boom")

    assert _temp_files(tmp_path) == []


def test_build_image_uses_temp_copy_and_cleans_up(tmp_path: Path, fake_runner) -> None:
    _write_dockerfile(tmp_path)
    seen = {}

    def _on_call(spec) -> None:  # noqa: ANN001
        dockerfile = spec.argv[spec.argv.index("-f") + 1]
        seen["dockerfile"] = dockerfile
        seen["exists_during_build"] = Path(dockerfile).exists()

    fake_runner.on_call = _on_call
    opts = BuildOptions(context_dir=str(tmp_path), use_cuda=True, use_ollama=True, image_tag="v1.0")

    image_ref = build_image(opts, runner=fake_runner)

    assert image_ref == "truly-open-webui:v1.0"
    assert seen["exists_during_build"] is True
    assert not Path(seen["dockerfile"]).exists()
    assert _temp_files(tmp_path) == []
    assert fake_runner.kwargs[0]["stream_output"] is True
    assert "USE_CUDA=true" in fake_runner.calls[0].argv
    assert fake_runner.calls[0].argv[-1] == str(tmp_path)


def test_build_image_cleans_up_when_build_fails(tmp_path: Path, fake_runner) -> None:
    _write_dockerfile(tmp_path)
    fake_runner.fail_on[("docker", "build")] = 2

    with pytest.raises(CommandError) as excinfo:
        build_image(BuildOptions(context_dir=str(tmp_path)), runner=fake_runner)

    assert excinfo.value.returncode == 2
    assert _temp_files(tmp_path) == []


def test_build_image_without_dockerfile(tmp_path: Path, fake_runner) -> None:
    with pytest.raises(DockerfileNotFoundError):
        build_image(BuildOptions(context_dir=str(tmp_path)), runner=fake_runner)

    assert fake_runner.calls == []

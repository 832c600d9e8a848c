"""
webui_deploy
------------

Truly Open WebUI 컨테이너 이미지를 빌드/태그/푸시하고,
로컬 Docker 또는 Google Cloud Run 으로 배포하는 CLI 패키지.
"""

__all__ = [
    "commands",
    "config",
]

"""Cloud Run 이미지 빌드에 쓰는 템플릿 파일 (Dockerfile.cloudrun, cloudrun-start.sh)."""

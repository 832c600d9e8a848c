import logging
import re
import shlex
import sys
from typing import Iterable, List


# 이름에 아래 단어가 포함된 KEY=VALUE 토큰은 로그에서 값을 가린다.
SECRET_NAME_MARKERS = ("SECRET", "KEY", "PASSWORD", "TOKEN")
REDACTED = "***"

_PAIR_START = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


def setup_logging(verbosity: int = 0) -> None:
    level = logging.INFO
    if verbosity >= 1:
        level = logging.DEBUG

    # CLI 가 여러 번 호출되는 환경(테스트 등)에서도 현재 stdout 으로 다시 연결한다.
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def is_secret_name(name: str) -> bool:
    upper = name.upper()
    return any(marker in upper for marker in SECRET_NAME_MARKERS)


def _redact_pair(pair: str) -> str:
    if "=" not in pair:
        return pair
    key, _ = pair.split("=", 1)
    if is_secret_name(key):
        return f"{key}={REDACTED}"
    return pair


def _redact_pairs(value: str) -> str:
    # 값에 쉼표가 들어 있으면 다음 KEY= 조각이 나올 때까지 같은 값의 이어짐으로 본다.
    out: List[str] = []
    in_secret = False
    for segment in value.split(","):
        if _PAIR_START.match(segment):
            key = segment.split("=", 1)[0]
            in_secret = is_secret_name(key)
            out.append(_redact_pair(segment))
        elif not in_secret:
            out.append(segment)
    return ",".join(out)


def _redact_token(token: str) -> str:
    # --set-env-vars=A=1,B=2 처럼 플래그 안에 여러 쌍이 들어있는 경우
    if token.startswith("--") and "=" in token:
        flag, value = token.split("=", 1)
        if "=" in value:
            return flag + "=" + _redact_pairs(value)
        return token
    if token.startswith("-"):
        return token
    return _redact_pair(token)


def redact_argv(argv: Iterable[str]) -> str:
    """
    argv 를 셸 인용 규칙으로 이어 붙인 문자열을 반환한다.
    SECRET/KEY/PASSWORD/TOKEN 이 들어간 변수의 값은 *** 로 가린다.
    """
    return shlex.join(_redact_token(str(t)) for t in argv)

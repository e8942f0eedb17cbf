"""
로거 어댑터

Core 레이어의 LoggerPort를 구현하는 Python 표준 로깅 어댑터입니다.
키워드 인자로 넘긴 문맥 정보(user_id, history_id 등)는 메시지 뒤에 key=value 형태로 붙입니다.
"""

import logging
import sys

from core.domain.ports import LoggerPort

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggerAdapter(LoggerPort):
    """Python 표준 로깅을 사용하는 로거 어댑터"""

    def __init__(
        self,
        name: str = "gmailsync",
        level: str = "INFO",
        format_string: str = DEFAULT_LOG_FORMAT,
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

        # 콘솔 핸들러는 최상위 로거에 한 번만 추가 (하위 로거는 전파로 출력)
        root_logger = logging.getLogger(name.split(".")[0])
        if not root_logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter(format_string))
            root_logger.addHandler(handler)

    def _render(self, message: str, context: dict) -> str:
        if not context:
            return message
        fields = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} [{fields}]"

    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        self.logger.info(self._render(message, kwargs))

    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        self.logger.warning(self._render(message, kwargs))

    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        self.logger.error(self._render(message, kwargs))

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(self._render(message, kwargs))


def create_logger(name: str = "gmailsync", level: str = "INFO") -> LoggerPort:
    """모듈 단위 로거(웹 라우터 등)를 생성합니다."""
    return LoggerAdapter(f"gmailsync.{name}" if name != "gmailsync" else name, level)

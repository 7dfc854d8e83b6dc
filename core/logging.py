"""
Squirrel Ledger 로깅

web 서버가 시작할 때 한 번 호출한다. 라이브러리 모듈은 핸들러를 달지 않고
logging.getLogger(__name__)만 사용.

출력 위치:
    stderr                         콘솔 (stdout은 CLI 결과 전용)
    logs/<process>/<process>.log   자정마다 회전, 7일 보관

사용법:
    from core.logging import setup_logging
    setup_logging("web", console_level="DEBUG")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7

# 원장 로그를 가리는 외부 라이브러리 로거 (WARNING 이상만)
NOISY_LOGGERS = [
    "httpcore",
    "httpx",
    "uvicorn.access",
    "asyncio",
]

# 전용 하위 디렉토리를 쓰는 프로세스
_PROCESS_DIRS = frozenset({"cli", "web"})


def get_log_dir(process_name: str, base_dir: Path | None = None) -> Path:
    """로그 디렉토리 (cli/web은 하위 디렉토리, 그 외는 루트)"""
    root = base_dir if base_dir is not None else Paths.LOGS_DIR
    return root / process_name if process_name in _PROCESS_DIRS else root


def _daily_file_handler(log_file: Path, level: int | str) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        interval=1,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"  # web.log.2026-01-20
    handler.setLevel(level)
    return handler


def setup_logging(
    process_name: str,
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거에 콘솔/파일 핸들러 설치

    다시 호출하면 기존 핸들러를 모두 교체한다.

    Args:
        process_name: "web" 또는 "cli"
        console_level: stderr 핸들러 레벨 ("DEBUG" 같은 이름도 가능)
        file_level: 파일 핸들러 레벨
        log_dir: 로그 루트 (None이면 Paths.LOGS_DIR)

    Returns:
        루트 Logger
    """
    target_dir = get_log_dir(process_name, log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_file = target_dir / f"{process_name}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (console_handler, _daily_file_handler(log_file, file_level)):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.debug(f"{process_name} 로그 파일: {log_file}")
    return root_logger

"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → squirrel/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    # 기본 통화 (계정 추가 시 currency 미지정)
    CURRENCY: str = "USD"

    # 기초 잔액 상대 계정
    OPENING_BALANCE_ACCOUNT: str = "equity:opening-balances"
    OPENING_BALANCE_PAYEE: str = "Opening Balance"

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"


class LedgerFiles:
    """Generated ledger 디렉토리 내부 파일명 규칙"""

    ACTIVE: str = "ledger.transactions"
    ARCHIVE_DIR: str = "archive"
    ARCHIVE_PREFIX: str = "ledger-"
    EXTENSION: str = ".transactions"
    SOURCES: str = "sources.json"

    # 헤더 날짜를 읽을 수 없는 원장의 월 키
    UNKNOWN_MONTH: str = "unknown"


class EnvVars:
    """환경 변수 이름"""

    GENERATED_DIR: str = "SQUIRREL_GENERATED_DIR"
    SETTINGS_FILE: str = "SQUIRREL_SETTINGS_FILE"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # Generated ledger 기본 위치
    GENERATED_DIR: Path = DATA_DIR / "generated"

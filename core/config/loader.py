"""
설정 로더

settings.yaml 로드 및 generated ledger 설정 생성
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, EnvVars, Paths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSettings:
    """원장 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    generated_dir: Path
    opening_balance_account: str = Defaults.OPENING_BALANCE_ACCOUNT
    default_currency: str = Defaults.CURRENCY
    log_level: str = Defaults.LOG_LEVEL


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _read_str(data: dict[str, Any], key: str, default: str) -> str:
    """문자열 필드 읽기 (타입 검증 포함)"""
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise SettingsLoadError(
            f"settings.yaml의 '{key}' 필드는 비어 있지 않은 문자열이어야 합니다: {value!r}"
        )
    return value.strip()


def load_settings(path: Path | None = None) -> LedgerSettings:
    """settings.yaml 파일 로드

    파일이 없으면 기본값 사용.
    환경 변수 SQUIRREL_GENERATED_DIR가 있으면 generated_dir를 덮어씀.

    Args:
        path: settings.yaml 경로 (None이면 SQUIRREL_SETTINGS_FILE 또는 기본 경로)

    Returns:
        LedgerSettings 인스턴스

    Raises:
        SettingsLoadError: 형식이 잘못된 경우
    """
    if path is None:
        env_path = os.environ.get(EnvVars.SETTINGS_FILE)
        path = Path(env_path) if env_path else Paths.SETTINGS_FILE

    data: dict[str, Any] = {}
    if path.exists():
        try:
            content = path.read_text(encoding="utf-8")
            loaded = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

        if loaded is not None:
            if not isinstance(loaded, dict):
                raise SettingsLoadError("settings.yaml의 최상위는 매핑이어야 합니다")
            data = loaded
    else:
        logger.debug(f"settings.yaml 없음, 기본값 사용: {path}")

    generated_dir = Path(_read_str(data, "generated_dir", str(Paths.GENERATED_DIR)))
    if not generated_dir.is_absolute():
        # 상대 경로는 settings.yaml 위치 기준
        generated_dir = path.parent / generated_dir

    # 환경 변수 우선
    env_dir = os.environ.get(EnvVars.GENERATED_DIR)
    if env_dir:
        generated_dir = Path(env_dir)

    log_level = _read_str(data, "log_level", Defaults.LOG_LEVEL).upper()
    if logging.getLevelName(log_level) == f"Level {log_level}":
        raise SettingsLoadError(f"유효하지 않은 log_level입니다: '{log_level}'")

    return LedgerSettings(
        generated_dir=generated_dir,
        opening_balance_account=_read_str(
            data, "opening_balance_account", Defaults.OPENING_BALANCE_ACCOUNT
        ),
        default_currency=_read_str(data, "default_currency", Defaults.CURRENCY),
        log_level=log_level,
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    settings.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _settings: LedgerSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            self._settings = load_settings(settings_path)

    @property
    def generated_dir(self) -> Path:
        """Generated ledger 디렉토리"""
        assert self._settings is not None
        return self._settings.generated_dir

    @property
    def opening_balance_account(self) -> str:
        """기초 잔액 상대 계정"""
        assert self._settings is not None
        return self._settings.opening_balance_account

    @property
    def default_currency(self) -> str:
        """기본 통화"""
        assert self._settings is not None
        return self._settings.default_currency

    @property
    def log_level(self) -> str:
        """로그 레벨"""
        assert self._settings is not None
        return self._settings.log_level

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: settings.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)

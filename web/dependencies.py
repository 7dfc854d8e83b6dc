"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
"""

from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from core.config.loader import Settings, get_settings
from core.ledger import LedgerStore
from web.services.ledger_service import LedgerService


def get_app_settings() -> Settings:
    """애플리케이션 설정 반환"""
    return get_settings()


@lru_cache(maxsize=None)
def _store_for(base_dir: Path, opening_balance_account: str, default_currency: str) -> LedgerStore:
    # 디렉토리별로 하나의 인스턴스 (인스턴스 락으로 작업 직렬화)
    return LedgerStore(
        base_dir,
        opening_balance_account=opening_balance_account,
        default_currency=default_currency,
    )


def get_ledger_store(settings: Settings = Depends(get_app_settings)) -> LedgerStore:
    """Generated ledger 저장소 반환"""
    return _store_for(
        settings.generated_dir,
        settings.opening_balance_account,
        settings.default_currency,
    )


def get_ledger_service(store: LedgerStore = Depends(get_ledger_store)) -> LedgerService:
    return LedgerService(store)


def reset_ledger_stores() -> None:
    """캐시된 저장소 초기화 (테스트용)"""
    _store_for.cache_clear()

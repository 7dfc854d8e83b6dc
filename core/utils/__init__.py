"""
유틸리티 패키지

txn id 생성, 중복 인덱스, 날짜/월 키 처리 등 공통 유틸리티
"""

from core.utils.dedup import SourceLocation, TxnIdIndex
from core.utils.idempotency import generate_txn_id, is_generated_txn_id
from core.utils.timezone import (
    current_month_key,
    month_key,
    month_key_from_text,
    now_utc,
    parse_ledger_datetime,
    today_local,
    validate_month_key,
)

__all__ = [
    "SourceLocation",
    "TxnIdIndex",
    "generate_txn_id",
    "is_generated_txn_id",
    "current_month_key",
    "month_key",
    "month_key_from_text",
    "now_utc",
    "parse_ledger_datetime",
    "today_local",
    "validate_month_key",
]

"""
원장 타입 정의

Ledger 시스템에서 사용하는 Enum 및 예약어 정의
"""

from enum import Enum


class TransactionStatus(str, Enum):
    """거래 상태 마커

    헤더의 날짜 바로 뒤 한 글자.
    str을 상속하여 JSON 직렬화 가능.
    """

    CLEARED = "*"  # 확정
    PENDING = "!"  # 대기


class Severity(str, Enum):
    """진단 심각도

    ERROR가 하나라도 있으면 ok=False.
    INFO는 ok에 영향 없음.
    """

    ERROR = "error"
    INFO = "info"


class LotFieldKind(str, Enum):
    """Lot(원가) 주석 필드 종류"""

    AMOUNT = "amount"  # 10.00 USD
    DATETIME = "datetime"  # 2026-01-15
    TEXT = "text"  # "maker fee"
    PATH = "path"  # expenses:fees:trading
    IDENT = "ident"  # binance
    KEY_VALUE = "key_value"  # fee:0.10 USD


# 거래 고유 ID를 담는 예약 태그 키 (중복 검사의 유일한 기준)
TXN_TAG_KEY: str = "txn"

# 헤더 상태 마커 문자 → Enum
STATUS_MARKERS: dict[str, TransactionStatus] = {s.value: s for s in TransactionStatus}


# 포스팅 들여쓰기 (정확히 공백 4칸)
POSTING_INDENT: str = "    "

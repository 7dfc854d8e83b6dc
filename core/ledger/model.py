"""
원장 도메인 모델

Builder가 구문 트리를 변환해 만드는 불변 객체.
금액은 모두 Decimal (부동소수점 사용 금지).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Union

from core.ledger.diagnostics import Diagnostic
from core.ledger.types import TXN_TAG_KEY, LotFieldKind, TransactionStatus
from core.utils.timezone import month_key


def quote(text: str) -> str:
    """문자열을 원장 따옴표 문자열로 변환 (역슬래시, 따옴표 이스케이프)"""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def account_group(account: str) -> str:
    """계정 경로의 첫 세그먼트 (표시 그룹)

    Example:
        >>> account_group("assets:cash:usd")
        'assets'
    """
    return account.split(":", 1)[0]


# =============================================================================
# Lot 필드 (종류별 tagged variant)
# =============================================================================


@dataclass(frozen=True)
class LotAmount:
    """위치 금액 (commodity 생략 가능)"""

    quantity: Decimal
    commodity: str | None = None
    kind: LotFieldKind = field(default=LotFieldKind.AMOUNT, init=False, repr=False)


@dataclass(frozen=True)
class LotDateTime:
    """위치 날짜/시각 (원문 보존)"""

    value: date | datetime
    text: str
    kind: LotFieldKind = field(default=LotFieldKind.DATETIME, init=False, repr=False)


@dataclass(frozen=True)
class LotText:
    """따옴표 메모"""

    value: str
    kind: LotFieldKind = field(default=LotFieldKind.TEXT, init=False, repr=False)


@dataclass(frozen=True)
class LotPath:
    """경로 (expenses:fees:trading)"""

    value: str
    kind: LotFieldKind = field(default=LotFieldKind.PATH, init=False, repr=False)


@dataclass(frozen=True)
class LotIdent:
    """식별자 (binance)"""

    value: str
    kind: LotFieldKind = field(default=LotFieldKind.IDENT, init=False, repr=False)


LotValue = Union[LotAmount, LotDateTime, LotText, LotPath, LotIdent]


@dataclass(frozen=True)
class LotKeyValue:
    """key:value 필드 (fee:0.10 USD)"""

    key: str
    value: LotValue
    kind: LotFieldKind = field(default=LotFieldKind.KEY_VALUE, init=False, repr=False)


LotField = Union[LotAmount, LotDateTime, LotText, LotPath, LotIdent, LotKeyValue]


# =============================================================================
# 주석 / 태그
# =============================================================================


@dataclass(frozen=True)
class Amount:
    """금액 + commodity"""

    quantity: Decimal
    commodity: str


@dataclass(frozen=True)
class CostAnnotation:
    """원가 주석

    total=True면 {{ }} (총액), False면 { } (단가).
    잔액 계산에는 사용하지 않고 구조만 보존.
    """

    total: bool
    amount: Amount | None = None
    fields: tuple[LotField, ...] = ()


@dataclass(frozen=True)
class PriceAnnotation:
    """가격 주석 (@ 단가, @@ 총액)"""

    total: bool
    amount: Amount


@dataclass(frozen=True)
class Tag:
    """메타데이터 태그

    key가 없으면 bare 태그. value는 원문 텍스트 (따옴표 문자열은 해제된 값).
    """

    value: str
    key: str | None = None
    quoted: bool = False

    @property
    def text(self) -> str:
        """원장 문법 형태의 텍스트 (txn:01J2N9R9)"""
        value = quote(self.value) if self.quoted else self.value
        if self.key is None:
            return value
        return f"{self.key}:{value}"


# =============================================================================
# 거래 / 포스팅
# =============================================================================


@dataclass(frozen=True)
class Posting:
    """포스팅 (계정 + 부호 있는 금액 + commodity)

    line은 비교에서 제외 (재렌더링 후 위치가 달라져도 같은 포스팅).
    """

    account: str
    amount: Decimal
    commodity: str
    cost: CostAnnotation | None = None
    price: PriceAnnotation | None = None
    meta: tuple[Tag, ...] = ()
    line: int = field(default=0, compare=False)

    @property
    def group(self) -> str:
        return account_group(self.account)


@dataclass(frozen=True)
class Transaction:
    """거래

    datetime_text는 원문 DATETIME 그대로, when은 해석된 값.
    """

    datetime_text: str
    when: date | datetime
    status: TransactionStatus | None
    payee: str | None
    narration: str | None
    meta: tuple[Tag, ...]
    postings: tuple[Posting, ...]
    line: int = field(default=0, compare=False)
    end_line: int = field(default=0, compare=False)

    @property
    def date_text(self) -> str:
        """표시용 날짜 (YYYY-MM-DD)"""
        return self.datetime_text[:10]

    @property
    def day(self) -> date:
        if isinstance(self.when, datetime):
            return self.when.date()
        return self.when

    @property
    def txn_id(self) -> str | None:
        """txn 태그 값 (없으면 None)"""
        for tag in self.meta:
            if tag.key == TXN_TAG_KEY:
                return tag.value
        return None

    @property
    def is_flagged(self) -> bool:
        """txn id 누락 표시"""
        return self.txn_id is None

    @property
    def month_key(self) -> str:
        return month_key(self.when)

    @property
    def meta_text(self) -> str:
        """원문 태그 텍스트 (쉼표 구분)"""
        return ", ".join(tag.text for tag in self.meta)


# =============================================================================
# 잔액 / 결과
# =============================================================================


@dataclass(frozen=True)
class CommodityTotal:
    commodity: str
    amount: Decimal


@dataclass(frozen=True)
class AccountBalance:
    """계정별 잔액 (commodity는 처음 등장한 순서)"""

    account: str
    totals: tuple[CommodityTotal, ...]

    @property
    def group(self) -> str:
        return account_group(self.account)

    def total(self, commodity: str) -> Decimal | None:
        for item in self.totals:
            if item.commodity == commodity:
                return item.amount
        return None


@dataclass(frozen=True)
class ParseResult:
    """파싱 결과

    ok는 ERROR 진단이 하나도 없을 때만 True.
    진단이 있어도 만들어진 거래는 항상 함께 반환.
    """

    ok: bool
    diagnostics: tuple[Diagnostic, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    balances: tuple[AccountBalance, ...] = ()

    def balance(self, account: str) -> AccountBalance | None:
        for item in self.balances:
            if item.account == account:
                return item
        return None

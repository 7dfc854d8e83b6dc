"""
원장 문법 렌더링

도메인 모델 → 원장 텍스트. 렌더링 결과를 다시 파싱하면 같은 모델이 된다.
"""

from decimal import Decimal

from core.ledger.model import (
    Amount,
    CostAnnotation,
    LotAmount,
    LotDateTime,
    LotField,
    LotKeyValue,
    LotText,
    Posting,
    PriceAnnotation,
    Tag,
    Transaction,
    quote,
)
from core.ledger.types import POSTING_INDENT


def format_decimal(value: Decimal) -> str:
    """Decimal → 고정 소수점 문자열 (지수 표기 없음, 소수 자릿수 보존)

    Example:
        >>> format_decimal(Decimal("100.0"))
        '100.0'
        >>> format_decimal(Decimal("1E+2"))
        '100'
    """
    return format(value, "f")


def render_amount(amount: Amount) -> str:
    return f"{format_decimal(amount.quantity)} {amount.commodity}"


def render_tags(tags: tuple[Tag, ...]) -> str:
    return ", ".join(tag.text for tag in tags)


def _render_lot_field(field: LotField) -> str:
    if isinstance(field, LotKeyValue):
        return f"{field.key}:{_render_lot_field(field.value)}"
    if isinstance(field, LotAmount):
        if field.commodity is None:
            return format_decimal(field.quantity)
        return f"{format_decimal(field.quantity)} {field.commodity}"
    if isinstance(field, LotDateTime):
        return field.text
    if isinstance(field, LotText):
        return quote(field.value)
    return field.value


def render_cost(cost: CostAnnotation) -> str:
    """원가 주석 렌더링 ({ ... } / {{ ... }})"""
    parts = []
    if cost.amount is not None:
        parts.append(render_amount(cost.amount))
    parts.extend(_render_lot_field(field) for field in cost.fields)

    opener, closer = ("{{", "}}") if cost.total else ("{", "}")
    if not parts:
        return f"{opener}{closer}"
    return f"{opener} {', '.join(parts)} {closer}"


def render_price(price: PriceAnnotation) -> str:
    marker = "@@" if price.total else "@"
    return f"{marker} {render_amount(price.amount)}"


def posting_remainder(posting: Posting) -> str:
    """금액/commodity 뒤의 나머지 텍스트 (원가, 가격, 태그)"""
    parts = []
    if posting.cost is not None:
        parts.append(render_cost(posting.cost))
    if posting.price is not None:
        parts.append(render_price(posting.price))
    if posting.meta:
        parts.append(f"; {render_tags(posting.meta)}")
    return " ".join(parts)


def render_posting(posting: Posting) -> str:
    line = f"{POSTING_INDENT}{posting.account}  {format_decimal(posting.amount)} {posting.commodity}"
    remainder = posting_remainder(posting)
    if remainder:
        line = f"{line} {remainder}"
    return line


def render_transaction(txn: Transaction) -> str:
    """거래 블록 렌더링 (헤더 + 포스팅, 마지막 줄도 개행으로 끝남)

    payee/narration은 항상 따옴표로 감싼다.

    Example:
        >>> print(render_transaction(txn), end="")
        2026-01-15 * "Binance" "Buy SOL" ; txn:01J2N9R9
            assets:cash:usd  -230.10 USD
    """
    header = [txn.datetime_text]
    if txn.status is not None:
        header.append(txn.status.value)
    if txn.payee is not None:
        header.append(quote(txn.payee))
    if txn.narration is not None:
        header.append(quote(txn.narration))
    header.append(";")
    if txn.meta:
        header.append(render_tags(txn.meta))

    lines = [" ".join(header)]
    lines.extend(render_posting(posting) for posting in txn.postings)
    return "\n".join(lines) + "\n"

"""
잔액 엔진

거래 목록(원문 순서)을 계정/commodity별 누적 합계로 접는다.

- 정확한 Decimal 덧셈만 사용 (자릿수에 맞춰 정밀도를 늘리므로 반올림 없음)
- 한 누적 슬롯에 commodity를 섞지 않음
- 계정은 처음 포스팅된 순서, commodity는 계정 안에서 처음 등장한 순서
- 원가/가격 주석은 잔액에 반영하지 않음
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import (
    MAX_EMAX,
    MIN_EMIN,
    Context,
    Decimal,
    DivisionByZero,
    Inexact,
    InvalidOperation,
    Overflow,
)
from typing import Iterable, Iterator

from core.ledger.model import AccountBalance, CommodityTotal, Posting, Transaction

# 최소 정밀도 (기본 컨텍스트와 동일)
MIN_PRECISION = 28


def exact_add(a: Decimal, b: Decimal) -> Decimal:
    """두 금액의 정확한 합

    두 피연산자의 최상위 자리부터 최하위 자리까지 담을 수 있도록
    정밀도를 잡으므로 자릿수가 아무리 길어도 반올림되지 않는다.
    정밀도 계산이 틀리면 Inexact 예외.

    Example:
        >>> exact_add(Decimal("-230.10"), Decimal("0.10"))
        Decimal('-230.00')
    """
    top = max(a.adjusted(), b.adjusted())
    bottom = min(a.as_tuple().exponent, b.as_tuple().exponent)
    context = Context(
        prec=max(MIN_PRECISION, top - bottom + 2),
        Emax=MAX_EMAX,
        Emin=MIN_EMIN,
        traps=[InvalidOperation, Inexact, Overflow, DivisionByZero],
    )
    return context.add(a, b)


@dataclass(frozen=True)
class RunningBalance:
    """포스팅 직후 해당 (계정, commodity)의 누적 잔액"""

    transaction: Transaction
    posting: Posting
    balance: Decimal


class _Accumulator:
    """계정 → commodity → 합계 (삽입 순서 유지)"""

    def __init__(self) -> None:
        self.totals: dict[str, dict[str, Decimal]] = {}

    def add(self, posting: Posting) -> Decimal:
        slots = self.totals.setdefault(posting.account, {})
        current = slots.get(posting.commodity, Decimal(0))
        updated = exact_add(current, posting.amount)
        slots[posting.commodity] = updated
        return updated

    def snapshot(self) -> list[AccountBalance]:
        return [
            AccountBalance(
                account=account,
                totals=tuple(
                    CommodityTotal(commodity=commodity, amount=amount)
                    for commodity, amount in slots.items()
                ),
            )
            for account, slots in self.totals.items()
        ]


def compute_balances(transactions: Iterable[Transaction]) -> list[AccountBalance]:
    """계정별 잔액 계산

    Args:
        transactions: 원문 순서의 거래 (아카이브 → 활성 원장 순으로 이어 붙인 것)

    Returns:
        포스팅을 한 번 이상 받은 계정별 AccountBalance

    Example:
        >>> balances = compute_balances(result.transactions)
        >>> balances[0].totals[0].amount
        Decimal('10.000000')
    """
    accumulator = _Accumulator()
    for txn in transactions:
        for posting in txn.postings:
            accumulator.add(posting)
    return accumulator.snapshot()


def running_balances(transactions: Iterable[Transaction]) -> Iterator[RunningBalance]:
    """포스팅마다 누적 잔액을 원문 순서대로 생성

    중간 잔액은 순서에 따라 달라지므로 반드시 파일 순서로 전달할 것.
    """
    accumulator = _Accumulator()
    for txn in transactions:
        for posting in txn.postings:
            yield RunningBalance(
                transaction=txn,
                posting=posting,
                balance=accumulator.add(posting),
            )


def balances_as_of(transactions: Iterable[Transaction], on: date) -> list[AccountBalance]:
    """on 날짜(포함)까지의 거래만 접은 잔액

    시각이 있는 거래는 기록된 날짜 기준으로 비교.
    """
    return compute_balances(txn for txn in transactions if txn.day <= on)

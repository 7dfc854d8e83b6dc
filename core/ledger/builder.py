"""
의미 단계 Builder / Validator

구문 트리(FileNode) → 도메인 모델(Transaction) 변환 및 업무 규칙 검증.

검증 규칙:
- 모든 거래는 txn 태그 필수 (누락 시 진단, 거래는 포함)
- txn 값은 인덱스 전체에서 유일 (중복 시 최초 위치와 함께 진단)
- 포스팅은 금액과 commodity 필수
- lot 주석 안의 숫자/날짜는 해석 가능해야 함
- 포스팅이 하나뿐인 거래는 INFO 진단
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from core.ledger.diagnostics import Diagnostics
from core.ledger.lexer import Token, TokenKind
from core.ledger.model import (
    Amount,
    CostAnnotation,
    LotAmount,
    LotDateTime,
    LotField,
    LotIdent,
    LotKeyValue,
    LotPath,
    LotText,
    LotValue,
    Posting,
    PriceAnnotation,
    Tag,
    Transaction,
)
from core.ledger.syntax import (
    CostNode,
    FieldNode,
    FileNode,
    PostingNode,
    PriceNode,
    TransactionNode,
    ValueNode,
)
from core.ledger.types import STATUS_MARKERS, TXN_TAG_KEY
from core.utils.dedup import SourceLocation, TxnIdIndex
from core.utils.timezone import parse_ledger_datetime

logger = logging.getLogger(__name__)

COMMODITY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

MISSING_TXN_ID = "missing transaction id"
DUPLICATE_TXN_ID = "duplicate transaction id"
SINGLE_POSTING = "transaction has a single posting"


class _Rejected(Exception):
    """포스팅을 버려야 하는 lot/가격 주석 오류 (진단은 이미 기록됨)"""


class SemanticBuilder:
    """구문 트리 → 도메인 모델 변환기

    txn id 인덱스는 호출자가 검증 패스마다 새로 만들어 전달.
    아카이브와 활성 원장을 한 인덱스로 묶으면 파일 간 중복도 검출된다.

    Args:
        index: txn id 인덱스 (None이면 새 인덱스)
        source: 중복 진단에 표시할 파일 이름

    Example:
        >>> builder = SemanticBuilder()
        >>> transactions = builder.build(file_node)
        >>> builder.diagnostics.has_errors
        False
    """

    def __init__(self, index: TxnIdIndex | None = None, source: str | None = None):
        self.index = index if index is not None else TxnIdIndex()
        self.source = source
        self.diagnostics = Diagnostics()

    def build(self, file: FileNode) -> list[Transaction]:
        """FileNode의 거래를 원문 순서대로 변환

        변환에 실패한 거래는 제외하고 진단만 남긴다.
        """
        transactions: list[Transaction] = []
        for node in file.transactions:
            txn = self._transaction(node)
            if txn is not None:
                transactions.append(txn)

        logger.debug(
            f"의미 검증 완료: built={len(transactions)}, "
            f"diagnostics={len(self.diagnostics)}"
        )
        return transactions

    # =========================================================================
    # 거래
    # =========================================================================

    def _transaction(self, node: TransactionNode) -> Transaction | None:
        dt = node.datetime
        try:
            when = parse_ledger_datetime(dt.text)
        except ValueError:
            self.diagnostics.error(dt.line, dt.column, f"invalid date: {dt.text}")
            return None

        if node.posting_lines == 0:
            self.diagnostics.error(dt.line, dt.column, "transaction missing postings")
            return None

        postings = []
        for posting_node in node.postings:
            posting = self._posting(posting_node)
            if posting is not None:
                postings.append(posting)
        if not postings:
            # 포스팅 진단은 이미 기록됨
            return None

        meta = tuple(self._tag(field) for field in node.meta)
        self._check_txn_id(node)

        if len(postings) == 1:
            self.diagnostics.info(dt.line, dt.column, SINGLE_POSTING)

        texts = [token.value for token in node.texts]
        return Transaction(
            datetime_text=dt.text,
            when=when,
            status=STATUS_MARKERS[node.status.text] if node.status else None,
            payee=texts[0] if texts else None,
            narration=texts[1] if len(texts) > 1 else None,
            meta=meta,
            postings=tuple(postings),
            line=node.line,
            end_line=node.end_line,
        )

    def _check_txn_id(self, node: TransactionNode) -> None:
        id_fields = [
            field for field in node.meta
            if field.key is not None and field.key.text == TXN_TAG_KEY
        ]

        if not id_fields:
            # ';' 누락은 Parser가 이미 보고
            if node.has_meta_comment:
                self.diagnostics.error(node.line, node.datetime.column, MISSING_TXN_ID)
            return

        for extra in id_fields[1:]:
            self.diagnostics.error(
                extra.key.line,
                extra.key.column,
                "multiple transaction ids (expected one 'txn' tag)",
            )

        first = id_fields[0]
        txn_id = self._tag(first).value
        previous = self.index.register(
            txn_id, SourceLocation(line=node.line, source=self.source)
        )
        if previous is not None:
            self.diagnostics.error(
                first.key.line,
                first.key.column,
                f"{DUPLICATE_TXN_ID} '{txn_id}' (first seen at {previous.describe()})",
            )

    def _tag(self, field: FieldNode) -> Tag:
        token = field.value.token
        quoted = token.kind == TokenKind.QUOTED
        value = token.value if quoted else token.text
        if field.value.commodity is not None:
            value = f"{value} {field.value.commodity.text}"
        return Tag(
            value=value,
            key=field.key.text if field.key is not None else None,
            quoted=quoted,
        )

    # =========================================================================
    # 포스팅
    # =========================================================================

    def _posting(self, node: PostingNode) -> Posting | None:
        account = node.account
        if node.amount is None:
            self.diagnostics.error(
                account.line, account.column + len(account.text) + 1, "missing amount"
            )
            return None
        if node.commodity is None:
            self.diagnostics.error(
                node.amount.line,
                node.amount.column + len(node.amount.text) + 1,
                "missing commodity",
            )
            return None

        try:
            commodity = self._commodity(node.commodity)
            cost = self._cost(node.cost) if node.cost is not None else None
            price = self._price(node.price) if node.price is not None else None
        except _Rejected:
            return None

        return Posting(
            account=account.text,
            amount=Decimal(node.amount.text),
            commodity=commodity,
            cost=cost,
            price=price,
            meta=tuple(self._tag(field) for field in node.meta),
            line=node.line,
        )

    def _commodity(self, token: Token) -> str:
        if not COMMODITY_RE.fullmatch(token.text):
            self.diagnostics.error(token.line, token.column, f"invalid commodity: {token.text}")
            raise _Rejected(token.text)
        return token.text

    def _cost(self, node: CostNode) -> CostAnnotation:
        amount = None
        if node.amount is not None and node.commodity is not None:
            amount = Amount(Decimal(node.amount.text), self._commodity(node.commodity))
        fields = tuple(self._lot_field(field) for field in node.fields)
        return CostAnnotation(total=node.total, amount=amount, fields=fields)

    def _price(self, node: PriceNode) -> PriceAnnotation:
        return PriceAnnotation(
            total=node.total,
            amount=Amount(Decimal(node.amount.text), self._commodity(node.commodity)),
        )

    # =========================================================================
    # Lot 필드
    # =========================================================================

    def _lot_field(self, field: FieldNode) -> LotField:
        value = self._lot_value(field.value)
        if field.key is None:
            return value
        return LotKeyValue(key=field.key.text, value=value)

    def _lot_value(self, node: ValueNode) -> LotValue:
        token = node.token

        if token.kind == TokenKind.NUMBER:
            commodity = self._commodity(node.commodity) if node.commodity else None
            return LotAmount(quantity=self._lot_number(token), commodity=commodity)
        if token.kind == TokenKind.DATETIME:
            return LotDateTime(value=self._lot_datetime(token), text=token.text)
        if token.kind == TokenKind.QUOTED:
            return LotText(token.value)
        if token.kind == TokenKind.PATHLIKE:
            return LotPath(token.text)
        return LotIdent(token.text)

    def _lot_number(self, token: Token) -> Decimal:
        try:
            value = Decimal(token.text)
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite():
            self.diagnostics.error(
                token.line, token.column, f"invalid number in lot annotation: {token.text}"
            )
            raise _Rejected(token.text)
        return value

    def _lot_datetime(self, token: Token) -> date | datetime:
        try:
            return parse_ledger_datetime(token.text)
        except ValueError:
            self.diagnostics.error(
                token.line, token.column, f"invalid date in lot annotation: {token.text}"
            )
            raise _Rejected(token.text) from None

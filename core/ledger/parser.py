"""
원장 문법 Parser

토큰 스트림 → 구문 트리(FileNode) + 구조 진단.

문법:
    file        := (blank | directive | transaction)*
    transaction := header posting*
    header      := DATETIME STATUS? text? text? ';' fields
    posting     := INDENT account amount? commodity? cost? price? (';' fields)?
    cost        := '{' body '}' | '{{' body '}}'
    body        := (NUMBER IDENT (',' fields)?) | fields?
    price       := ('@' | '@@') NUMBER IDENT
    fields      := field (',' field)*

복구 규칙:
- 한 줄의 오류는 해당 줄만 버리고 다음 줄부터 계속 파싱
- 헤더 파싱 실패 또는 알 수 없는 줄은 현재 거래를 닫고,
  다음 빈 줄 또는 DATETIME 줄까지 건너뜀 (재동기화)
"""

import logging
import re
from typing import Iterable, Iterator

from core.ledger.diagnostics import Diagnostics
from core.ledger.lexer import DATETIME_RE, Token, TokenKind
from core.ledger.syntax import (
    CostNode,
    DirectiveNode,
    FieldNode,
    FileNode,
    PostingNode,
    PriceNode,
    TransactionNode,
    ValueNode,
)

logger = logging.getLogger(__name__)

# key:value 토큰을 쪼갠 뒤 값 분류용 (숫자 검증은 Builder가 담당)
_NUMBER_LIKE_RE = re.compile(r"[+-]?[0-9][0-9.]*")

_LOT_CLOSERS = frozenset({TokenKind.RBRACE, TokenKind.RBRACE2})

MISSING_META_COMMENT = "missing meta comment (expected ';')"


class _Line:
    """한 줄의 토큰 커서 (마지막은 항상 NEWLINE)"""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self, offset: int = 0) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def next(self) -> Token:
        token = self.peek()
        if self.index < len(self.tokens) - 1:
            self.index += 1
        return token


def _split_lines(tokens: Iterable[Token]) -> Iterator[_Line]:
    current: list[Token] = []
    for token in tokens:
        current.append(token)
        if token.kind == TokenKind.NEWLINE:
            yield _Line(current)
            current = []
    if current:
        last = current[-1]
        eol = Token(TokenKind.NEWLINE, "\n", last.line, last.column + len(last.text))
        yield _Line(current + [eol])


def _describe(token: Token) -> str:
    if token.kind == TokenKind.NEWLINE:
        return "end of line"
    return f"'{token.text}'"


def _classify_value(text: str) -> TokenKind:
    """key:value 토큰의 값 부분 분류"""
    if DATETIME_RE.fullmatch(text):
        return TokenKind.DATETIME
    if _NUMBER_LIKE_RE.fullmatch(text):
        return TokenKind.NUMBER
    if ":" in text:
        return TokenKind.PATHLIKE
    return TokenKind.IDENT


class _Parser:
    """줄 단위 재귀 하강 Parser"""

    def __init__(self) -> None:
        self.file = FileNode()
        self.diagnostics = Diagnostics()
        self.current: TransactionNode | None = None
        self.resync = False

    # =========================================================================
    # 공통
    # =========================================================================

    def _error(self, token: Token, message: str) -> None:
        self.diagnostics.error(token.line, token.column, message)

    def _expected(self, token: Token, what: str) -> None:
        if token.kind == TokenKind.ERROR:
            self._error(token, token.value)
        else:
            self._error(token, f"expected {what}, found {_describe(token)}")

    # =========================================================================
    # 줄 분기
    # =========================================================================

    def feed(self, line: _Line) -> None:
        first = line.peek()

        if first.kind == TokenKind.NEWLINE:
            self.current = None
            self.resync = False
            return

        if first.kind == TokenKind.DIRECTIVE:
            self.file.items.append(DirectiveNode(first))
            return

        if first.kind == TokenKind.DATETIME and first.column == 1:
            self.current = None
            self.resync = False
            txn = self._header(line)
            if txn is None:
                self.resync = True
                return
            self.current = txn
            self.file.items.append(txn)
            return

        if self.resync:
            return

        if first.kind == TokenKind.INDENT:
            if self.current is None:
                self._error(first, "posting without transaction header")
                return
            self.current.posting_lines += 1
            self.current.end_line = first.line
            posting = self._posting(line)
            if posting is not None:
                self.current.postings.append(posting)
            return

        if first.column > 1 and self.current is not None:
            # 거래 안의 잘못된 들여쓰기: 해당 줄만 버림
            self.current.posting_lines += 1
            self.current.end_line = first.line
            self._error(first, "invalid indentation: postings must be indented by exactly 4 spaces")
            return

        self.current = None
        self.resync = True
        if first.column > 1:
            self._error(first, "invalid indentation: postings must be indented by exactly 4 spaces")
        else:
            self._error(first, "invalid line: expected transaction header, posting, or directive")

    # =========================================================================
    # 헤더
    # =========================================================================

    def _header(self, line: _Line) -> TransactionNode | None:
        """헤더 줄 파싱

        Returns:
            TransactionNode 또는 None (재동기화 필요)
        """
        dt = line.next()
        txn = TransactionNode(datetime=dt, end_line=dt.line)

        if line.peek().kind == TokenKind.STATUS:
            txn.status = line.next()

        texts: list[Token] = []
        while line.peek().kind in (TokenKind.QUOTED, TokenKind.WORDS):
            texts.append(line.next())

        token = line.peek()
        if token.kind in (TokenKind.COMMA, TokenKind.COLON):
            self._error(
                token,
                f"unquoted payee or narration must not contain '{token.text}' (use quotes)",
            )
            return None
        if token.kind == TokenKind.ERROR:
            self._error(token, token.value)
            return None
        if len(texts) > 2:
            self._error(texts[2], "too many text fields (expected payee and narration)")
            return None
        txn.texts = texts

        if token.kind == TokenKind.NEWLINE:
            if txn.status is None and not texts:
                self._error(token, "missing transaction details")
            self._error(token, MISSING_META_COMMENT)
            txn.has_meta_comment = False
            return txn

        if token.kind != TokenKind.SEMICOLON:
            self._expected(token, "';'")
            return None
        line.next()

        meta = self._fields(line, in_lot=False)
        if meta is None:
            return None
        txn.meta = meta
        return txn

    # =========================================================================
    # 필드 (태그 / lot 필드)
    # =========================================================================

    def _at_list_end(self, line: _Line, in_lot: bool) -> bool:
        kind = line.peek().kind
        if kind == TokenKind.NEWLINE:
            return True
        return in_lot and kind in _LOT_CLOSERS

    def _fields(self, line: _Line, *, in_lot: bool) -> list[FieldNode] | None:
        fields: list[FieldNode] = []
        if self._at_list_end(line, in_lot):
            return fields

        while True:
            field = self._field(line, in_lot)
            if field is None:
                return None
            fields.append(field)

            token = line.peek()
            if token.kind == TokenKind.COMMA:
                line.next()
                continue
            if self._at_list_end(line, in_lot):
                return fields
            self._expected(token, "','")
            return None

    def _value(self, line: _Line) -> ValueNode | None:
        token = line.peek()
        if token.kind == TokenKind.NUMBER:
            line.next()
            commodity = line.next() if line.peek().kind == TokenKind.IDENT else None
            return ValueNode(token, commodity)
        if token.kind in (
            TokenKind.QUOTED,
            TokenKind.DATETIME,
            TokenKind.IDENT,
            TokenKind.PATHLIKE,
        ):
            line.next()
            return ValueNode(token)
        return None

    def _field(self, line: _Line, in_lot: bool) -> FieldNode | None:
        token = line.peek()

        if token.kind == TokenKind.PATHLIKE:
            # 첫 세그먼트가 key, 나머지가 value
            line.next()
            key_text, _, value_text = token.text.partition(":")
            key = Token(TokenKind.IDENT, key_text, token.line, token.column, key_text)
            value = Token(
                _classify_value(value_text),
                value_text,
                token.line,
                token.column + len(key_text) + 1,
                value_text,
            )
            commodity = None
            if value.kind == TokenKind.NUMBER and line.peek().kind == TokenKind.IDENT:
                commodity = line.next()
            return FieldNode(ValueNode(value, commodity), key)

        if token.kind == TokenKind.IDENT:
            line.next()
            if line.peek().kind != TokenKind.COLON:
                return FieldNode(ValueNode(token))
            line.next()
            value_node = self._value(line)
            if value_node is None:
                self._expected(line.peek(), f"value after '{token.text}:'")
                return None
            return FieldNode(value_node, token)

        if in_lot and token.kind in (TokenKind.QUOTED, TokenKind.DATETIME, TokenKind.NUMBER):
            return FieldNode(self._value(line))

        self._expected(token, "lot field" if in_lot else "tag")
        return None

    # =========================================================================
    # 포스팅
    # =========================================================================

    def _posting(self, line: _Line) -> PostingNode | None:
        indent = line.next()

        account = line.peek()
        if account.kind == TokenKind.NEWLINE:
            self._error(account, "missing account")
            return None
        if account.kind != TokenKind.PATHLIKE:
            self._error(account, f"invalid account path: {account.text}")
            return None
        line.next()

        amount: Token | None = None
        token = line.peek()
        if token.kind == TokenKind.NUMBER:
            amount = line.next()
        elif token.kind == TokenKind.IDENT and line.peek(1).kind == TokenKind.IDENT:
            # 금액 자리에 숫자가 아닌 단어 (1e5 USD)
            self._error(token, f"invalid amount: {token.text}")
            return None
        elif token.kind not in (
            TokenKind.IDENT,
            TokenKind.NEWLINE,
            TokenKind.SEMICOLON,
            TokenKind.LBRACE,
            TokenKind.LBRACE2,
            TokenKind.AT,
            TokenKind.ATAT,
        ):
            self._error(token, f"invalid amount: {token.text}")
            return None

        commodity: Token | None = None
        token = line.peek()
        if token.kind == TokenKind.IDENT:
            commodity = line.next()
        elif amount is not None and token.kind in (
            TokenKind.NUMBER,
            TokenKind.PATHLIKE,
            TokenKind.DATETIME,
            TokenKind.QUOTED,
        ):
            self._error(token, f"invalid commodity: {token.text}")
            return None

        cost = None
        if line.peek().kind in (TokenKind.LBRACE, TokenKind.LBRACE2):
            cost = self._cost(line)
            if cost is None:
                return None

        price = None
        if line.peek().kind in (TokenKind.AT, TokenKind.ATAT):
            price = self._price(line)
            if price is None:
                return None

        meta: list[FieldNode] = []
        if line.peek().kind == TokenKind.SEMICOLON:
            line.next()
            parsed = self._fields(line, in_lot=False)
            if parsed is None:
                return None
            meta = parsed

        token = line.peek()
        if token.kind != TokenKind.NEWLINE:
            if token.kind == TokenKind.ERROR:
                self._error(token, token.value)
            else:
                self._error(token, f"unexpected {_describe(token)} in posting")
            return None

        return PostingNode(
            indent=indent,
            account=account,
            amount=amount,
            commodity=commodity,
            cost=cost,
            price=price,
            meta=tuple(meta),
        )

    def _cost(self, line: _Line) -> CostNode | None:
        opener = line.next()
        total = opener.kind == TokenKind.LBRACE2
        closer = TokenKind.RBRACE2 if total else TokenKind.RBRACE

        amount: Token | None = None
        commodity: Token | None = None
        fields: list[FieldNode] | None = []

        # "금액 + 추가 필드" 형태: NUMBER IDENT 뒤에 ',' 또는 닫는 괄호
        if (
            line.peek().kind == TokenKind.NUMBER
            and line.peek(1).kind == TokenKind.IDENT
            and line.peek(2).kind in (TokenKind.COMMA, *_LOT_CLOSERS)
        ):
            amount = line.next()
            commodity = line.next()
            if line.peek().kind == TokenKind.COMMA:
                line.next()
                fields = self._fields(line, in_lot=True)
        else:
            fields = self._fields(line, in_lot=True)

        if fields is None:
            return None

        token = line.peek()
        if token.kind == closer:
            line.next()
            return CostNode(
                total=total,
                open=opener,
                amount=amount,
                commodity=commodity,
                fields=tuple(fields),
            )
        if token.kind in _LOT_CLOSERS:
            expected = "}}" if total else "}"
            self._error(token, f"mismatched lot annotation: expected '{expected}'")
        else:
            self._error(token, "unterminated lot annotation")
        return None

    def _price(self, line: _Line) -> PriceNode | None:
        marker = line.next()
        if line.peek().kind != TokenKind.NUMBER or line.peek(1).kind != TokenKind.IDENT:
            self._error(line.peek(), "price annotation requires an amount and commodity")
            return None
        amount = line.next()
        commodity = line.next()
        return PriceNode(
            total=marker.kind == TokenKind.ATAT,
            marker=marker,
            amount=amount,
            commodity=commodity,
        )


def parse(tokens: Iterable[Token]) -> tuple[FileNode, Diagnostics]:
    """토큰 스트림을 구문 트리로 변환

    오류가 있어도 파일 끝까지 파싱하며, 실패한 줄만 빠진 부분 결과를 반환.

    Args:
        tokens: tokenize() 결과

    Returns:
        (FileNode, 구조 진단)
    """
    parser = _Parser()
    for line in _split_lines(tokens):
        parser.feed(line)

    logger.debug(
        f"구문 파싱 완료: transactions={len(parser.file.transactions)}, "
        f"diagnostics={len(parser.diagnostics)}"
    )
    return parser.file, parser.diagnostics

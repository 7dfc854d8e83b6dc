"""
원장 구문 트리 (CST)

Parser가 만드는 구문 노드. 토큰을 그대로 보존하며 값 해석은 Builder가 담당.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.ledger.lexer import Token


@dataclass(frozen=True)
class ValueNode:
    """값 토큰 (NUMBER 뒤에 commodity IDENT가 붙을 수 있음)"""

    token: Token
    commodity: Token | None = None


@dataclass(frozen=True)
class FieldNode:
    """태그 또는 lot 필드

    key가 있으면 key:value, 없으면 위치 값.
    """

    value: ValueNode
    key: Token | None = None


@dataclass(frozen=True)
class CostNode:
    """원가 주석 {...} 또는 {{...}}"""

    total: bool
    open: Token
    amount: Token | None = None
    commodity: Token | None = None
    fields: tuple[FieldNode, ...] = ()


@dataclass(frozen=True)
class PriceNode:
    """가격 주석 @ 또는 @@"""

    total: bool
    marker: Token
    amount: Token
    commodity: Token


@dataclass(frozen=True)
class PostingNode:
    """포스팅 줄

    amount/commodity는 문법상 누락 가능 (의미 단계에서 진단).
    """

    indent: Token
    account: Token
    amount: Token | None = None
    commodity: Token | None = None
    cost: CostNode | None = None
    price: PriceNode | None = None
    meta: tuple[FieldNode, ...] = ()

    @property
    def line(self) -> int:
        return self.indent.line


@dataclass
class TransactionNode:
    """거래 블록 (헤더 + 포스팅)

    Parser가 포스팅을 이어 붙이므로 가변.
    end_line은 블록에 속한 마지막 줄 (포스팅 또는 실패한 포스팅 줄 포함).
    """

    datetime: Token
    status: Token | None = None
    texts: list[Token] = field(default_factory=list)
    meta: list[FieldNode] = field(default_factory=list)
    has_meta_comment: bool = True
    postings: list[PostingNode] = field(default_factory=list)
    posting_lines: int = 0
    end_line: int = 0

    @property
    def line(self) -> int:
        return self.datetime.line


@dataclass(frozen=True)
class DirectiveNode:
    """주석 줄 (구조적으로 무시, 보존만)"""

    token: Token

    @property
    def text(self) -> str:
        return self.token.value


@dataclass
class FileNode:
    """파일 전체 (거래와 주석, 원문 순서)"""

    items: list[TransactionNode | DirectiveNode] = field(default_factory=list)

    @property
    def transactions(self) -> list[TransactionNode]:
        return [item for item in self.items if isinstance(item, TransactionNode)]

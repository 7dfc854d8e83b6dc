"""
원장 파싱 파이프라인

텍스트 → 토큰 → 구문 트리 → 도메인 모델 (+ 진단) → 잔액
"""

import logging
from pathlib import Path

from core.ledger.balance import compute_balances
from core.ledger.builder import SemanticBuilder
from core.ledger.diagnostics import Diagnostics
from core.ledger.lexer import tokenize
from core.ledger.model import ParseResult, Transaction
from core.ledger.parser import parse
from core.utils.dedup import TxnIdIndex

logger = logging.getLogger(__name__)


def build_text(
    text: str,
    *,
    source: str | None = None,
    index: TxnIdIndex | None = None,
) -> tuple[list[Transaction], Diagnostics]:
    """텍스트를 거래 목록과 진단으로 변환 (잔액 계산 없음)

    Args:
        text: 원장 텍스트
        source: 중복 진단에 표시할 파일 이름
        index: txn id 인덱스 (여러 파일을 한 패스로 검증할 때 공유)

    Returns:
        (거래 목록, 문법+의미 진단)
    """
    file_node, diagnostics = parse(tokenize(text))
    builder = SemanticBuilder(index=index, source=source)
    transactions = builder.build(file_node)
    diagnostics.extend(builder.diagnostics)
    return transactions, diagnostics


def parse_text(
    text: str,
    *,
    source: str | None = None,
    index: TxnIdIndex | None = None,
) -> ParseResult:
    """원장 텍스트 파싱

    Args:
        text: 원장 텍스트
        source: 중복 진단에 표시할 파일 이름
        index: txn id 인덱스 (None이면 이 텍스트만으로 검증)

    Returns:
        ParseResult (진단은 위치순 정렬)

    Example:
        >>> result = parse_text(contents)
        >>> result.ok
        True
        >>> result.transactions[0].payee
        'Binance'
    """
    transactions, diagnostics = build_text(text, source=source, index=index)
    result = ParseResult(
        ok=not diagnostics.has_errors,
        diagnostics=tuple(diagnostics.sorted()),
        transactions=tuple(transactions),
        balances=tuple(compute_balances(transactions)),
    )
    logger.debug(
        f"파싱 완료: ok={result.ok}, transactions={len(result.transactions)}, "
        f"diagnostics={len(result.diagnostics)}"
    )
    return result


def parse_file(path: str | Path) -> ParseResult:
    """원장 파일 파싱 (UTF-8)

    Raises:
        OSError: 파일을 읽을 수 없는 경우
        UnicodeDecodeError: UTF-8이 아닌 경우
    """
    text = Path(path).read_text(encoding="utf-8")
    return parse_text(text)

"""
복식부기 원장 (plain-text ledger)

원장 텍스트를 검증된 거래 목록으로 변환하고 계정별 잔액을 계산한다.
앱이 관리하는 generated ledger는 LedgerStore가 담당.

사용 예시:
```python
from core.ledger import LedgerStore, parse_file

# 파일 파싱
result = parse_file("binance.transactions")
if not result.ok:
    for d in result.diagnostics:
        print(d.format())

# Generated ledger
store = LedgerStore("data/generated")
stats = store.import_sources(["binance.transactions"], "202601").stats
result = store.add_account("assets:CBA:smartaccess", "AUD", "100.0")
```
"""

from core.ledger.balance import balances_as_of, compute_balances, running_balances
from core.ledger.diagnostics import Diagnostic, Diagnostics
from core.ledger.model import (
    AccountBalance,
    Amount,
    CommodityTotal,
    CostAnnotation,
    ParseResult,
    Posting,
    PriceAnnotation,
    Tag,
    Transaction,
)
from core.ledger.pipeline import parse_file, parse_text
from core.ledger.render import render_transaction
from core.ledger.store import (
    ImportResult,
    ImportStats,
    LedgerStore,
    LedgerStoreError,
    ManualPostingInput,
    ManualTransactionError,
    ManualTransactionInput,
    RotationResult,
    SourceReadError,
)
from core.ledger.types import Severity, TransactionStatus

__all__ = [
    # 파싱
    "parse_text",
    "parse_file",
    "render_transaction",
    # 잔액
    "compute_balances",
    "running_balances",
    "balances_as_of",
    # 저장소
    "LedgerStore",
    "LedgerStoreError",
    "SourceReadError",
    "ManualTransactionError",
    "ManualPostingInput",
    "ManualTransactionInput",
    "ImportStats",
    "ImportResult",
    "RotationResult",
    # 모델
    "Transaction",
    "Posting",
    "Amount",
    "CostAnnotation",
    "PriceAnnotation",
    "Tag",
    "AccountBalance",
    "CommodityTotal",
    "ParseResult",
    "Diagnostic",
    "Diagnostics",
    # Enum
    "Severity",
    "TransactionStatus",
]

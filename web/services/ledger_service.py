"""
Ledger 서비스

LedgerStore 작업 호출 및 응답 스키마 변환
"""

import logging
from pathlib import Path

from core.ledger import (
    LedgerStore,
    ManualPostingInput,
    ManualTransactionInput,
    ParseResult,
    parse_file,
)
from core.ledger.model import AccountBalance, Transaction
from core.ledger.render import format_decimal, posting_remainder
from core.utils.timezone import current_month_key
from web.models.requests import AddAccountRequest, ManualTransactionRequest
from web.models.responses import (
    AccountBalanceResponse,
    CommodityTotalResponse,
    DiagnosticResponse,
    ImportResponse,
    ImportStatsResponse,
    ParseResponse,
    PostingResponse,
    RotateResponse,
    TransactionResponse,
)

logger = logging.getLogger(__name__)


def to_transaction_response(txn: Transaction) -> TransactionResponse:
    return TransactionResponse(
        date=txn.date_text,
        datetime=txn.datetime_text,
        status=txn.status.value if txn.status else None,
        payee=txn.payee,
        narration=txn.narration,
        meta=txn.meta_text,
        txn_id=txn.txn_id,
        line=txn.line,
        postings=[
            PostingResponse(
                account=p.account,
                amount=format_decimal(p.amount),
                commodity=p.commodity,
                remainder=posting_remainder(p) or None,
            )
            for p in txn.postings
        ],
    )


def to_balance_response(balance: AccountBalance) -> AccountBalanceResponse:
    return AccountBalanceResponse(
        account=balance.account,
        group=balance.group,
        totals=[
            CommodityTotalResponse(commodity=t.commodity, amount=format_decimal(t.amount))
            for t in balance.totals
        ],
    )


def to_parse_response(result: ParseResult) -> ParseResponse:
    """ParseResult → ParseResponse"""
    return ParseResponse(
        ok=result.ok,
        diagnostics=[
            DiagnosticResponse(
                line=d.line,
                column=d.column,
                message=d.message,
                severity=d.severity.value,
                source=d.source,
            )
            for d in result.diagnostics
        ],
        transactions=[to_transaction_response(t) for t in result.transactions],
        balances=[to_balance_response(b) for b in result.balances],
    )


class LedgerService:
    """Ledger 서비스

    외부 계층에 노출하는 작업 계약 (parse, load, import, manual, account, rotate).

    Args:
        store: Generated ledger 저장소
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    @staticmethod
    def _month(now_yyyymm: str | None) -> str:
        return now_yyyymm or current_month_key()

    def parse(self, path: str) -> ParseResponse:
        """원장 파일 파싱

        Raises:
            FileNotFoundError: 파일이 없는 경우
            OSError: 읽기 실패
        """
        return to_parse_response(parse_file(Path(path)))

    def load(self, now_yyyymm: str | None = None) -> ParseResponse:
        return to_parse_response(self.store.load(self._month(now_yyyymm)))

    def rotate(self, now_yyyymm: str | None = None) -> RotateResponse:
        result = self.store.rotate(self._month(now_yyyymm))
        return RotateResponse(
            generated_dir=str(self.store.base_dir),
            rotated=result.rotated,
            archive=result.archive_path.name if result.archive_path else None,
            archived=result.archived,
        )

    def import_sources(self, paths: list[str], now_yyyymm: str | None = None) -> ImportResponse:
        result = self.store.import_sources(paths, self._month(now_yyyymm))
        return ImportResponse(
            stats=ImportStatsResponse(
                imported=result.stats.imported,
                skipped_duplicates=result.stats.skipped_duplicates,
                archived=result.stats.archived,
                skipped_invalid=result.stats.skipped_invalid,
            ),
            parse=to_parse_response(result.parse),
        )

    def add_manual(self, request: ManualTransactionRequest) -> ParseResponse:
        entry = ManualTransactionInput(
            datetime=request.datetime,
            status=request.status,
            payee=request.payee,
            narration=request.narration,
            postings=tuple(
                ManualPostingInput(
                    account=p.account,
                    amount=p.amount,
                    commodity=p.commodity,
                    remainder=p.remainder,
                )
                for p in request.postings
            ),
            txn_id=request.txn_id,
        )
        result = self.store.add_manual(entry, self._month(request.now_yyyymm))
        return to_parse_response(result)

    def add_account(self, request: AddAccountRequest) -> ParseResponse:
        result = self.store.add_account(
            request.account_name,
            currency=request.currency,
            opening_balance=request.opening_balance,
            month=self._month(request.now_yyyymm),
        )
        return to_parse_response(result)

"""
Generated ledger 관리 CLI

사용법:
    generated-ledger rotate --month 202602
    generated-ledger load
    generated-ledger import exports/binance.transactions exports/kraken.transactions
    generated-ledger add-manual --datetime 2026-01-20 --payee Manual --narration Test \\
        --posting "assets:cash:usd 1.00 USD" --posting "expenses:manual:test -1.00 USD"
    generated-ledger add-account assets:CBA:smartaccess --currency AUD --opening-balance 100.0

공통 옵션:
    --dir    원장 디렉토리 (기본: settings.yaml 또는 SQUIRREL_GENERATED_DIR)
    --month  현재 월 YYYYMM (기본: 로컬 기준 현재 월)

결과는 JSON으로 stdout에 출력.
종료 코드: 0 성공, 1 진단 있음(ok=False), 2 작업 실패
"""

import argparse
import logging
import sys
from pathlib import Path

from core.config.loader import SettingsLoadError, get_settings
from core.ledger import LedgerStore, LedgerStoreError, ManualTransactionError
from web.models.requests import AddAccountRequest, ManualPostingRequest, ManualTransactionRequest
from web.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_FAILURE = 2


def parse_posting(text: str) -> ManualPostingRequest:
    """'account amount commodity [remainder]' → ManualPostingRequest

    Raises:
        argparse.ArgumentTypeError: 필드가 부족한 경우
    """
    parts = text.split(None, 3)
    if len(parts) < 3:
        raise argparse.ArgumentTypeError(
            f"posting must be 'account amount commodity [remainder]': {text!r}"
        )
    return ManualPostingRequest(
        account=parts[0],
        amount=parts[1],
        commodity=parts[2],
        remainder=parts[3] if len(parts) > 3 else None,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="generated-ledger",
        description="Generated ledger 회전/로드/가져오기/추가",
    )
    parser.add_argument("--dir", type=Path, default=None, help="원장 디렉토리")
    parser.add_argument("--month", default=None, help="현재 월 (YYYYMM)")
    parser.add_argument("--log-level", default="INFO", help="로그 레벨 (기본: INFO)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("rotate", help="월이 바뀌었으면 활성 원장을 아카이브")
    sub.add_parser("load", help="회전 후 활성 원장 파싱")

    p_import = sub.add_parser("import", help="외부 원장 파일 가져오기")
    p_import.add_argument("paths", nargs="+", help="원본 파일 (순서대로 처리)")

    p_manual = sub.add_parser("add-manual", help="수동 거래 추가")
    p_manual.add_argument("--datetime", required=True, help="YYYY-MM-DD 또는 DATETIME")
    p_manual.add_argument("--payee", required=True)
    p_manual.add_argument("--narration", default=None)
    p_manual.add_argument("--status", choices=["*", "!"], default=None)
    p_manual.add_argument("--txn-id", default=None, help="거래 ID (생략 시 생성)")
    p_manual.add_argument(
        "--posting",
        dest="postings",
        type=parse_posting,
        action="append",
        required=True,
        help="'account amount commodity [remainder]' (반복)",
    )

    p_account = sub.add_parser("add-account", help="계정 추가")
    p_account.add_argument("name", help="계정 경로")
    p_account.add_argument("--currency", default=None)
    p_account.add_argument("--opening-balance", default=None)

    return parser


def _run(args: argparse.Namespace, service: LedgerService) -> int:
    if args.command == "rotate":
        print(service.rotate(args.month).model_dump_json(indent=2))
        return EXIT_OK

    if args.command == "import":
        response = service.import_sources(args.paths, args.month)
        print(response.model_dump_json(indent=2))
        return EXIT_OK if response.parse.ok else EXIT_DIAGNOSTICS

    if args.command == "add-manual":
        response = service.add_manual(
            ManualTransactionRequest(
                now_yyyymm=args.month,
                datetime=args.datetime,
                status=args.status,
                payee=args.payee,
                narration=args.narration,
                postings=args.postings,
                txn_id=args.txn_id,
            )
        )
    elif args.command == "add-account":
        response = service.add_account(
            AddAccountRequest(
                now_yyyymm=args.month,
                account_name=args.name,
                currency=args.currency,
                opening_balance=args.opening_balance,
            )
        )
    else:
        response = service.load(args.month)

    print(response.model_dump_json(indent=2))
    return EXIT_OK if response.ok else EXIT_DIAGNOSTICS


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = get_settings()
        base_dir = args.dir if args.dir is not None else settings.generated_dir
        store = LedgerStore(
            base_dir,
            opening_balance_account=settings.opening_balance_account,
            default_currency=settings.default_currency,
        )
        return _run(args, LedgerService(store))
    except ManualTransactionError as e:
        print(f"error: {e}", file=sys.stderr)
        for diagnostic in e.diagnostics:
            print(diagnostic.format(), file=sys.stderr)
        return EXIT_FAILURE
    except (LedgerStoreError, SettingsLoadError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())

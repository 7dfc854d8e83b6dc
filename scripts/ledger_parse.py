"""
원장 파일 검사

사용법:
    ledger-parse ledger.transactions
    python -m scripts.ledger_parse ledger.transactions

종료 코드:
    0: 오류 없음 (stdout에 OK)
    1: 진단 있음 (stderr에 "line L, column C: message")
    2: 사용법 오류 또는 파일 읽기 실패
"""

import argparse
import logging
import sys
from pathlib import Path

from core.ledger import parse_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_USAGE = 2


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ledger-parse",
        description="원장(.transactions) 파일 문법/의미 검사",
    )
    parser.add_argument("file", type=Path, help="검사할 원장 파일")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="로그 레벨 (기본: WARNING)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        result = parse_file(args.file)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Failed to read file: {e}", file=sys.stderr)
        return EXIT_USAGE

    if result.ok:
        print("OK")
        return EXIT_OK

    print("Parse failed with diagnostics:", file=sys.stderr)
    for diagnostic in result.diagnostics:
        print(diagnostic.format(), file=sys.stderr)
    return EXIT_DIAGNOSTICS


if __name__ == "__main__":
    sys.exit(main())

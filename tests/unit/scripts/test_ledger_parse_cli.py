"""
scripts/ledger_parse.py 테스트

종료 코드와 stdout/stderr 출력 형식 확인
"""

from pathlib import Path

import pytest

from scripts.ledger_parse import EXIT_DIAGNOSTICS, EXIT_OK, EXIT_USAGE, main


class TestLedgerParseCli:
    """ledger-parse CLI 테스트"""

    def test_ok(self, binance_source: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """오류 없으면 stdout에 OK"""
        assert main([str(binance_source)]) == EXIT_OK
        captured = capsys.readouterr()
        assert captured.out.strip() == "OK"
        assert captured.err == ""

    def test_info_only_is_ok(
        self, kraken_source: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """INFO 진단만 있으면 성공"""
        assert main([str(kraken_source)]) == EXIT_OK
        assert capsys.readouterr().out.strip() == "OK"

    def test_diagnostics(self, temp_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """오류가 있으면 stderr에 줄/열/메시지"""
        path = temp_dir / "bad.transactions"
        path.write_text('2026-01-15 * "A" ; txn:1\n    a:b\n    c:d  1 USD\n', encoding="utf-8")

        assert main([str(path)]) == EXIT_DIAGNOSTICS

        captured = capsys.readouterr()
        assert captured.out == ""
        lines = captured.err.splitlines()
        assert lines[0] == "Parse failed with diagnostics:"
        assert "line 2, column 9: missing amount" in lines

    def test_missing_file(self, temp_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(temp_dir / "missing.transactions")]) == EXIT_USAGE
        assert capsys.readouterr().err.startswith("Failed to read file:")

    def test_no_arguments(self) -> None:
        """인자 없으면 argparse 사용법 오류 (종료 코드 2)"""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == EXIT_USAGE

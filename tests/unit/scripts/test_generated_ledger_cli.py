"""
scripts/generated_ledger.py 테스트

서브커맨드별 JSON 출력과 종료 코드 확인
"""

import argparse
import json
from pathlib import Path

import pytest

from core.constants import EnvVars
from scripts.generated_ledger import (
    EXIT_DIAGNOSTICS,
    EXIT_FAILURE,
    EXIT_OK,
    main,
    parse_posting,
)


@pytest.fixture(autouse=True)
def no_settings_file(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """저장소의 settings.yaml 대신 기본값 사용"""
    monkeypatch.setenv(EnvVars.SETTINGS_FILE, str(temp_dir / "missing.yaml"))


def run(ledger_dir: Path, *args: str) -> int:
    return main(["--dir", str(ledger_dir), "--month", "202601", "--log-level", "WARNING", *args])


def output(capsys: pytest.CaptureFixture[str]) -> dict:
    return json.loads(capsys.readouterr().out)


class TestParsePosting:
    """--posting 값 파싱 테스트"""

    def test_basic(self) -> None:
        posting = parse_posting("assets:cash:usd 1.00 USD")
        assert (posting.account, posting.amount, posting.commodity) == (
            "assets:cash:usd",
            "1.00",
            "USD",
        )
        assert posting.remainder is None

    def test_remainder(self) -> None:
        posting = parse_posting("assets:sol 2 SOL {{ 460 USD }} ; note:x")
        assert posting.remainder == "{{ 460 USD }} ; note:x"

    def test_too_short(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            parse_posting("assets:cash:usd 1.00")


class TestGeneratedLedgerCli:
    """generated-ledger CLI 테스트"""

    def test_load_empty(self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert run(ledger_dir, "load") == EXIT_OK
        assert output(capsys)["ok"] is True

    def test_import(
        self,
        ledger_dir: Path,
        binance_source: Path,
        kraken_source: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run(ledger_dir, "import", str(binance_source), str(kraken_source)) == EXIT_OK
        data = output(capsys)
        assert data["stats"]["imported"] == 2
        assert [t["payee"] for t in data["parse"]["transactions"]] == ["Binance", "Kraken"]

    def test_rotate(self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (ledger_dir / "ledger.transactions").write_text(
            '2025-12-30 * "Shop" ; txn:dec-1\n    expenses:gifts  20 USD\n    assets:cash  -20 USD\n',
            encoding="utf-8",
        )
        assert run(ledger_dir, "rotate") == EXIT_OK
        data = output(capsys)
        assert data["rotated"] is True
        assert data["archive"] == "ledger-202512.transactions"

    def test_add_manual(self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = run(
            ledger_dir,
            "add-manual",
            "--datetime", "2026-01-20",
            "--payee", "Manual",
            "--narration", "Test",
            "--status", "*",
            "--txn-id", "manual-1",
            "--posting", "assets:cash:usd 1.00 USD",
            "--posting", "expenses:manual:test -1.00 USD",
        )
        assert code == EXIT_OK
        txn = output(capsys)["transactions"][0]
        assert txn["txn_id"] == "manual-1"
        assert txn["status"] == "*"

    def test_add_manual_invalid(
        self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """렌더링 결과가 올바르지 않으면 stderr에 진단, 종료 코드 2"""
        code = run(
            ledger_dir,
            "add-manual",
            "--datetime", "2026-01-20",
            "--payee", "Manual",
            "--posting", "assets 1.00 USD",
            "--posting", "expenses:manual:test -1.00 USD",
        )
        assert code == EXIT_FAILURE
        err = capsys.readouterr().err
        assert "manual transaction is not valid ledger syntax" in err
        assert "invalid account path: assets" in err

    def test_add_account(self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = run(
            ledger_dir,
            "add-account",
            "assets:CBA:smartaccess",
            "--currency", "AUD",
            "--opening-balance", "100.0",
        )
        assert code == EXIT_OK
        balances = {b["account"]: b["totals"] for b in output(capsys)["balances"]}
        assert balances["assets:CBA:smartaccess"] == [{"commodity": "AUD", "amount": "100.0"}]

    def test_add_account_invalid_name(
        self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run(ledger_dir, "add-account", "assets", "--opening-balance", "1") == EXIT_FAILURE
        assert "invalid account name" in capsys.readouterr().err

    def test_diagnostics_exit_code(
        self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """활성 원장에 오류가 있으면 종료 코드 1"""
        (ledger_dir / "ledger.transactions").write_text(
            '2026-01-15 * "A" ; txn:1\n    a:b\n    c:d  1 USD\n', encoding="utf-8"
        )
        assert run(ledger_dir, "load") == EXIT_DIAGNOSTICS
        assert output(capsys)["ok"] is False

    def test_invalid_month(self, ledger_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--dir", str(ledger_dir), "--month", "2026-01", "load"])
        assert code == EXIT_FAILURE
        assert "YYYYMM" in capsys.readouterr().err

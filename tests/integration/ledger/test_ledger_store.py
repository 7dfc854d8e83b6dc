"""LedgerStore 통합 테스트

실제 파일 시스템(임시 디렉토리)에서 회전, 로드, 가져오기, 수동 추가, 계정 추가 검증
"""

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from core.ledger import LedgerStore
from core.ledger.store import (
    ManualPostingInput,
    ManualTransactionError,
    ManualTransactionInput,
    SourceReadError,
    detect_ledger_month,
    join_blocks,
    render_manual,
    validate_account_name,
)
from core.ledger.types import TransactionStatus
from core.utils.idempotency import TXN_ID_LENGTH, is_generated_txn_id

JANUARY = (
    '2026-01-15 * "Cafe" "Coffee" ; txn:jan-1\n'
    "    expenses:food:coffee  4.50 USD\n"
    "    assets:cash:usd  -4.50 USD\n"
)

DECEMBER = (
    '2025-12-30 * "Shop" "Gift" ; txn:dec-1\n'
    "    expenses:gifts  20.00 USD\n"
    "    assets:cash:usd  -20.00 USD\n"
)


def leftover_temp_files(directory: Path) -> list[Path]:
    return [p for p in directory.rglob("*") if p.name.endswith(".tmp")]


def manual_entry(**overrides) -> ManualTransactionInput:
    values = dict(
        datetime="2026-01-20",
        status="*",
        payee="Manual",
        narration="Test",
        postings=(
            ManualPostingInput("assets:cash:usd", "1.00", "USD"),
            ManualPostingInput("expenses:manual:test", "-1.00", "USD"),
        ),
    )
    values.update(overrides)
    return ManualTransactionInput(**values)


class TestRotate:
    """월 회전 테스트"""

    def test_moves_previous_month_to_archive(self, store: LedgerStore) -> None:
        """다른 월이면 원문 그대로 아카이브, 활성 원장은 비움"""
        store.active_path.write_text(JANUARY, encoding="utf-8")

        result = store.rotate("202602")

        archive = store.archive_dir / "ledger-202601.transactions"
        assert result.rotated is True
        assert result.month == "202601"
        assert result.archive_path == archive
        assert result.archived == 1
        assert archive.read_text(encoding="utf-8") == JANUARY
        assert store.active_path.read_text(encoding="utf-8") == ""

    def test_second_rotation_is_noop(self, store: LedgerStore) -> None:
        """빈 활성 원장은 다시 회전하지 않음"""
        store.active_path.write_text(JANUARY, encoding="utf-8")
        store.rotate("202602")

        again = store.rotate("202601")

        assert again.rotated is False
        assert store.archive_paths() == [store.archive_dir / "ledger-202601.transactions"]
        assert store.active_path.read_text(encoding="utf-8") == ""

    def test_same_month_is_noop(self, store: LedgerStore) -> None:
        store.active_path.write_text(JANUARY, encoding="utf-8")

        first = store.rotate("202601")
        second = store.rotate("202601")

        assert first.rotated is False
        assert second.rotated is False
        assert store.active_path.read_text(encoding="utf-8") == JANUARY
        assert store.archive_paths() == []

    def test_missing_directory_is_created(self, temp_dir: Path) -> None:
        store = LedgerStore(temp_dir / "new" / "generated")
        result = store.rotate("202601")
        assert result.rotated is False
        assert store.base_dir.is_dir()

    def test_existing_archive_gets_suffix(self, store: LedgerStore) -> None:
        """같은 월 아카이브가 있으면 번호를 붙임"""
        store.archive_dir.mkdir()
        (store.archive_dir / "ledger-202601.transactions").write_text(JANUARY, encoding="utf-8")
        store.active_path.write_text(
            JANUARY.replace("txn:jan-1", "txn:jan-2"), encoding="utf-8"
        )

        result = store.rotate("202602")

        assert result.archive_path.name == "ledger-202601-2.transactions"
        assert [p.name for p in store.archive_paths()] == [
            "ledger-202601.transactions",
            "ledger-202601-2.transactions",
        ]

    def test_leading_comments_are_skipped(self, store: LedgerStore) -> None:
        """월은 첫 주석이 아닌 줄에서 결정"""
        store.active_path.write_text("; generated\n\n" + JANUARY, encoding="utf-8")
        assert store.rotate("202602").month == "202601"

    def test_unreadable_month_goes_to_unknown(self, store: LedgerStore) -> None:
        store.active_path.write_text("garbage line\n", encoding="utf-8")
        result = store.rotate("202602")
        assert result.archive_path.name == "ledger-unknown.transactions"
        assert result.archived == 0

    def test_archive_order(self, store: LedgerStore) -> None:
        """unknown → 월 순서 → 번호 순서"""
        store.archive_dir.mkdir()
        for name in (
            "ledger-202602.transactions",
            "ledger-202601-2.transactions",
            "ledger-unknown.transactions",
            "ledger-202601.transactions",
            "notes.txt",
        ):
            (store.archive_dir / name).write_text("", encoding="utf-8")

        assert [p.name for p in store.archive_paths()] == [
            "ledger-unknown.transactions",
            "ledger-202601.transactions",
            "ledger-202601-2.transactions",
            "ledger-202602.transactions",
        ]

    def test_invalid_month(self, store: LedgerStore) -> None:
        with pytest.raises(ValueError, match="YYYYMM"):
            store.rotate("2026-02")


class TestLoad:
    """로드 테스트"""

    def test_empty_ledger(self, store: LedgerStore) -> None:
        result = store.load("202601")
        assert result.ok
        assert result.transactions == ()
        assert result.balances == ()

    def test_balances_include_archives(self, store: LedgerStore) -> None:
        """회전 후에도 잔액은 아카이브부터 누적"""
        store.active_path.write_text(JANUARY, encoding="utf-8")

        result = store.load("202602")

        assert result.ok
        assert result.transactions == ()
        assert result.balance("assets:cash:usd").total("USD") == Decimal("-4.50")

    def test_folds_archives_then_active(self, store: LedgerStore) -> None:
        store.archive_dir.mkdir()
        (store.archive_dir / "ledger-202512.transactions").write_text(DECEMBER, encoding="utf-8")
        store.active_path.write_text(JANUARY, encoding="utf-8")

        result = store.load("202601")

        assert [t.txn_id for t in result.transactions] == ["jan-1"]
        assert result.balance("assets:cash:usd").total("USD") == Decimal("-24.50")
        assert [b.account for b in result.balances][:2] == ["expenses:gifts", "assets:cash:usd"]

    def test_duplicate_across_archive_and_active(self, store: LedgerStore) -> None:
        """아카이브와 활성 원장 사이의 txn id 중복은 진단"""
        store.archive_dir.mkdir()
        (store.archive_dir / "ledger-202512.transactions").write_text(
            DECEMBER.replace("txn:dec-1", "txn:jan-1"), encoding="utf-8"
        )
        store.active_path.write_text(JANUARY, encoding="utf-8")

        result = store.load("202601")

        assert not result.ok
        assert [d.message for d in result.diagnostics] == [
            "duplicate transaction id 'jan-1' "
            "(first seen at archive/ledger-202512.transactions:1)"
        ]

    def test_archive_diagnostics_carry_source(self, store: LedgerStore) -> None:
        store.archive_dir.mkdir()
        (store.archive_dir / "ledger-202512.transactions").write_text(
            DECEMBER.replace("20.00 USD", "USD"), encoding="utf-8"
        )
        result = store.load("202601")
        assert not result.ok
        diagnostic = next(d for d in result.diagnostics if d.is_error)
        assert diagnostic.source == "archive/ledger-202512.transactions"
        assert diagnostic.format().startswith("archive/ledger-202512.transactions: line 2")


class TestImportSources:
    """가져오기 테스트"""

    def test_import_into_empty_ledger(
        self, store: LedgerStore, kraken_source: Path
    ) -> None:
        """원본은 바이트 단위로 그대로, 활성 원장에 Kraken 거래 추가"""
        before = kraken_source.read_bytes()

        result = store.import_sources([kraken_source], "202601")

        assert result.stats.imported == 1
        assert result.stats.skipped_duplicates == 0
        assert result.stats.archived == 0
        assert kraken_source.read_bytes() == before
        assert '"Kraken"' in store.active_path.read_text(encoding="utf-8")
        assert [t.payee for t in result.parse.transactions] == ["Kraken"]
        assert result.parse.ok

    def test_imported_text_is_valid_ledger(
        self, store: LedgerStore, binance_source: Path, kraken_source: Path
    ) -> None:
        """여러 블록은 빈 줄로 구분, 다시 로드해도 같은 결과"""
        store.import_sources([binance_source, kraken_source], "202601")

        text = store.active_path.read_text(encoding="utf-8")
        assert "\n\n2026-01-20" in text
        assert text.endswith("\n")

        reloaded = store.load("202601")
        assert reloaded.ok
        assert [t.txn_id for t in reloaded.transactions] == ["01J2N9R9", "01J2NBK7"]
        cost = reloaded.transactions[0].postings[0].cost
        assert cost.amount.quantity == Decimal("230.00")

    def test_idempotent(self, store: LedgerStore, binance_source: Path) -> None:
        """같은 파일 두 번: 두 번째는 전부 중복"""
        store.import_sources([binance_source], "202601")
        text = store.active_path.read_text(encoding="utf-8")

        second = store.import_sources([binance_source], "202601")

        assert second.stats.imported == 0
        assert second.stats.skipped_duplicates == 1
        assert store.active_path.read_text(encoding="utf-8") == text

    def test_duplicates_within_batch(
        self, store: LedgerStore, temp_dir: Path, binance_source: Path
    ) -> None:
        """앞선 파일이 들여온 id는 같은 호출의 뒤 파일에서 중복"""
        copy = temp_dir / "binance-copy.transactions"
        copy.write_text(binance_source.read_text(encoding="utf-8"), encoding="utf-8")

        result = store.import_sources([binance_source, copy], "202601")

        assert result.stats.imported == 1
        assert result.stats.skipped_duplicates == 1

    def test_duplicates_against_archive(
        self, store: LedgerStore, binance_source: Path
    ) -> None:
        """아카이브에 있는 id도 중복"""
        store.import_sources([binance_source], "202601")
        store.rotate("202602")

        result = store.import_sources([binance_source], "202602")

        assert result.stats.imported == 0
        assert result.stats.skipped_duplicates == 1

    def test_reports_rotation(
        self, store: LedgerStore, kraken_source: Path
    ) -> None:
        """가져오기 전에 회전한 거래 수"""
        store.active_path.write_text(DECEMBER, encoding="utf-8")
        result = store.import_sources([kraken_source], "202601")
        assert result.stats.archived == 1
        assert (store.archive_dir / "ledger-202512.transactions").exists()

    def test_generates_missing_ids(self, store: LedgerStore, temp_dir: Path) -> None:
        """txn 태그가 없거나 ';'가 없는 거래는 id를 부여해 가져옴"""
        source = temp_dir / "manual.transactions"
        source.write_text(
            '2026-01-05 * "A" ; src:bank:1\n    assets:bank:a  1 USD\n    income:misc  -1 USD\n'
            "\n"
            '2026-01-06 * "B"\n    assets:bank:a  2 USD\n    income:misc  -2 USD\n',
            encoding="utf-8",
        )

        result = store.import_sources([source], "202601")

        assert result.stats.imported == 2
        assert result.parse.ok
        ids = [t.txn_id for t in result.parse.transactions]
        assert all(len(i) == TXN_ID_LENGTH and is_generated_txn_id(i) for i in ids)
        assert result.parse.transactions[0].meta_text.startswith("src:bank:1, txn:")

    def test_skips_invalid_transactions(self, store: LedgerStore, temp_dir: Path) -> None:
        """오류가 있는 거래는 건너뛰고 나머지는 가져옴"""
        source = temp_dir / "mixed.transactions"
        source.write_text(
            '2026-01-05 * "Bad" ; txn:bad\n    assets:bank:a\n    income:misc  -1 USD\n'
            "\n"
            '2026-01-06 * "Good" ; txn:good\n    assets:bank:a  2 USD\n    income:misc  -2 USD\n',
            encoding="utf-8",
        )

        result = store.import_sources([source], "202601")

        assert result.stats.imported == 1
        assert result.stats.skipped_invalid == 1
        assert [t.txn_id for t in result.parse.transactions] == ["good"]

    def test_unreadable_source_leaves_ledger_unchanged(
        self, store: LedgerStore, temp_dir: Path, binance_source: Path
    ) -> None:
        """원본을 읽을 수 없으면 작업 실패, 원장과 sources.json은 그대로"""
        store.active_path.write_text(JANUARY, encoding="utf-8")

        with pytest.raises(SourceReadError) as exc_info:
            store.import_sources([binance_source, temp_dir / "missing.transactions"], "202601")

        assert exc_info.value.path == temp_dir / "missing.transactions"
        assert store.active_path.read_text(encoding="utf-8") == JANUARY
        assert not store.sources_path.exists()

    def test_registers_sources(
        self, store: LedgerStore, binance_source: Path, kraken_source: Path
    ) -> None:
        """sources.json: 정렬된 경로 목록 (중복 없음)"""
        store.import_sources([kraken_source, binance_source], "202601")
        store.import_sources([kraken_source], "202601")

        data = json.loads(store.sources_path.read_text(encoding="utf-8"))
        assert data == {"paths": sorted([str(binance_source), str(kraken_source)])}
        assert store.registered_sources() == data["paths"]

    def test_corrupt_sources_file_is_rewritten(
        self, store: LedgerStore, kraken_source: Path
    ) -> None:
        store.sources_path.write_text("{not json", encoding="utf-8")
        store.import_sources([kraken_source], "202601")
        assert store.registered_sources() == [str(kraken_source)]

    def test_no_temp_files_left(self, store: LedgerStore, binance_source: Path) -> None:
        store.import_sources([binance_source], "202601")
        assert leftover_temp_files(store.base_dir) == []


class TestAddManual:
    """수동 거래 추가 테스트"""

    def test_appends_transaction(self, store: LedgerStore) -> None:
        result = store.add_manual(manual_entry(txn_id="manual-1"), "202601")

        assert result.ok
        txn = result.transactions[0]
        assert txn.txn_id == "manual-1"
        assert txn.payee == "Manual"
        assert txn.narration == "Test"
        assert [p.amount for p in txn.postings] == [Decimal("1.00"), Decimal("-1.00")]
        assert store.active_path.read_text(encoding="utf-8") == (
            '2026-01-20 * "Manual" "Test" ; txn:manual-1\n'
            "    assets:cash:usd  1.00 USD\n"
            "    expenses:manual:test  -1.00 USD\n"
        )

    def test_generates_id(self, store: LedgerStore) -> None:
        result = store.add_manual(manual_entry(), "202601")
        assert is_generated_txn_id(result.transactions[0].txn_id)

    def test_appends_after_existing(self, store: LedgerStore) -> None:
        store.active_path.write_text(JANUARY, encoding="utf-8")
        result = store.add_manual(manual_entry(txn_id="manual-1"), "202601")
        assert [t.txn_id for t in result.transactions] == ["jan-1", "manual-1"]
        assert store.active_path.read_text(encoding="utf-8").startswith(JANUARY + "\n")

    def test_remainder_and_meta(self, store: LedgerStore) -> None:
        entry = manual_entry(
            txn_id="manual-2",
            meta=("src:manual",),
            postings=(
                ManualPostingInput("assets:exchange:sol", Decimal("2"), "SOL", "{{ 460 USD }}"),
                ManualPostingInput("assets:cash:usd", "-460", "USD"),
            ),
        )
        result = store.add_manual(entry, "202601")
        txn = result.transactions[0]
        assert txn.meta_text == "txn:manual-2, src:manual"
        assert txn.postings[0].cost.total is True

    def test_duplicate_id_rejected(self, store: LedgerStore) -> None:
        store.active_path.write_text(JANUARY, encoding="utf-8")
        with pytest.raises(ManualTransactionError, match="duplicate transaction id 'jan-1'"):
            store.add_manual(manual_entry(txn_id="jan-1"), "202601")
        assert store.active_path.read_text(encoding="utf-8") == JANUARY

    def test_invalid_posting_rejected(self, store: LedgerStore) -> None:
        """올바른 문법이 아니면 진단과 함께 거부, 원장 변경 없음"""
        entry = manual_entry(
            postings=(
                ManualPostingInput("assets", "1.00", "USD"),
                ManualPostingInput("expenses:manual:test", "-1.00", "USD"),
            )
        )
        with pytest.raises(ManualTransactionError) as exc_info:
            store.add_manual(entry, "202601")
        errors = [d.message for d in exc_info.value.diagnostics if d.is_error]
        assert errors == ["invalid account path: assets"]
        assert not store.active_path.exists()

    def test_line_break_rejected(self, store: LedgerStore) -> None:
        with pytest.raises(ManualTransactionError, match="line breaks"):
            store.add_manual(manual_entry(payee="A\nB"), "202601")

    def test_quotes_in_payee(self, store: LedgerStore) -> None:
        result = store.add_manual(manual_entry(payee='Joe "JJ" Smith'), "202601")
        assert result.transactions[0].payee == 'Joe "JJ" Smith'

    def test_invalid_status_rejected(self, store: LedgerStore) -> None:
        """상태 마커가 payee로 밀려 저장되지 않음"""
        with pytest.raises(ManualTransactionError, match="invalid status marker: 'x'"):
            store.add_manual(manual_entry(status="x"), "202601")
        assert not store.active_path.exists()

    def test_datetime_with_trailing_text_rejected(self, store: LedgerStore) -> None:
        with pytest.raises(ManualTransactionError, match="invalid datetime"):
            store.add_manual(manual_entry(datetime="2026-01-20 Injected"), "202601")
        assert not store.active_path.exists()

    def test_pending_status_and_no_narration(self, store: LedgerStore) -> None:
        result = store.add_manual(manual_entry(status="!", narration=None), "202601")
        txn = result.transactions[0]
        assert txn.status == TransactionStatus.PENDING
        assert txn.payee == "Manual"
        assert txn.narration is None

    def test_datetime_with_time(self, store: LedgerStore) -> None:
        result = store.add_manual(
            manual_entry(datetime="2026-01-20T09:30:00+10:00", status=None), "202601"
        )
        txn = result.transactions[0]
        assert txn.datetime_text == "2026-01-20T09:30:00+10:00"
        assert txn.status is None
        assert txn.payee == "Manual"


class TestAddAccount:
    """계정 추가 테스트"""

    def test_opening_balance(self, store: LedgerStore) -> None:
        """기초 잔액: 계정과 기초 잔액 계정 양쪽 포스팅"""
        result = store.add_account(
            "assets:CBA:smartaccess",
            "AUD",
            "100.0",
            month="202601",
            on=date(2026, 1, 5),
        )

        assert result.ok
        balance = result.balance("assets:CBA:smartaccess")
        assert balance.group == "assets"
        assert [(t.commodity, str(t.amount)) for t in balance.totals] == [("AUD", "100.0")]
        assert result.balance("equity:opening-balances").total("AUD") == Decimal("-100.0")

        txn = result.transactions[0]
        assert txn.payee == "Opening Balance"
        assert txn.narration == "Open assets:CBA:smartaccess"
        assert txn.date_text == "2026-01-05"

    def test_default_currency(self, ledger_dir: Path) -> None:
        store = LedgerStore(
            ledger_dir,
            opening_balance_account="equity:open",
            default_currency="EUR",
        )
        result = store.add_account(
            "assets:bank:eur",
            opening_balance=Decimal("5"),
            month="202601",
            on=date(2026, 1, 5),
        )
        assert result.balance("assets:bank:eur").total("EUR") == Decimal("5")
        assert result.balance("equity:open").total("EUR") == Decimal("-5")

    def test_without_opening_balance_writes_nothing(self, store: LedgerStore) -> None:
        result = store.add_account("assets:bank:new", month="202601")
        assert result.ok
        assert result.balance("assets:bank:new") is None
        assert not store.active_path.exists() or store.active_path.read_text(encoding="utf-8") == ""

    def test_invalid_name(self, store: LedgerStore) -> None:
        with pytest.raises(ValueError, match="invalid account name"):
            store.add_account("assets", opening_balance="1", month="202601")

    def test_invalid_opening_balance(self, store: LedgerStore) -> None:
        with pytest.raises(ValueError, match="invalid opening balance"):
            store.add_account("assets:bank:a", opening_balance="lots", month="202601")


class TestHelpers:
    """저장소 헬퍼 테스트"""

    def test_detect_ledger_month(self) -> None:
        assert detect_ledger_month("") is None
        assert detect_ledger_month("; only comments\n\n") is None
        assert detect_ledger_month(JANUARY) == "202601"
        assert detect_ledger_month("    a:b  1 USD\n") == "unknown"

    @pytest.mark.parametrize(
        "existing, expected",
        [
            ("", "B\n"),
            ("A\n", "A\n\nB\n"),
            ("A\n\n", "A\n\nB\n"),
            ("A", "A\n\nB\n"),
        ],
    )
    def test_join_blocks(self, existing: str, expected: str) -> None:
        assert join_blocks(existing, ["B\n"]) == expected

    def test_validate_account_name(self) -> None:
        assert validate_account_name("assets:CBA:smartaccess") == "assets:CBA:smartaccess"
        for bad in ("assets", "assets:", "assets cash:usd", ""):
            with pytest.raises(ValueError):
                validate_account_name(bad)

    def test_render_manual_without_narration(self) -> None:
        entry = manual_entry(narration=None, status=None)
        text = render_manual(entry, "abc")
        assert text.splitlines()[0] == '2026-01-20 "Manual" ; txn:abc'

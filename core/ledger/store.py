"""
Generated Ledger 저장소

앱이 직접 관리하는 append-only 원장 파일.

디렉토리 구조:
    <base_dir>/ledger.transactions                  활성 원장 (현재 월)
    <base_dir>/archive/ledger-YYYYMM.transactions   월 단위 아카이브
    <base_dir>/sources.json                         가져온 원본 파일 목록

모든 쓰기는 임시 파일 + os.replace로 수행되어, 중간에 실패해도
이전 파일 또는 완전히 갱신된 파일만 남는다.
같은 디렉토리에 대한 작업은 인스턴스 락으로 직렬화.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Iterator

from core.constants import Defaults, LedgerFiles
from core.ledger.balance import compute_balances
from core.ledger.builder import DUPLICATE_TXN_ID, MISSING_TXN_ID
from core.ledger.diagnostics import Diagnostic, Diagnostics
from core.ledger.lexer import DATETIME_RE
from core.ledger.model import ParseResult, Tag, Transaction, quote
from core.ledger.parser import MISSING_META_COMMENT
from core.ledger.pipeline import build_text
from core.ledger.render import format_decimal, render_transaction
from core.ledger.types import POSTING_INDENT, STATUS_MARKERS, TXN_TAG_KEY
from core.utils.dedup import SourceLocation, TxnIdIndex
from core.utils.idempotency import generate_txn_id
from core.utils.timezone import (
    current_month_key,
    month_key_from_text,
    today_local,
    validate_month_key,
)

logger = logging.getLogger(__name__)

ACCOUNT_NAME_RE = re.compile(r"[A-Za-z0-9_.\-]+(?::[A-Za-z0-9_.\-]+)+")

_ARCHIVE_NAME_RE = re.compile(
    rf"{re.escape(LedgerFiles.ARCHIVE_PREFIX)}"
    rf"(?P<month>\d{{6}}|{LedgerFiles.UNKNOWN_MONTH})"
    rf"(?:-(?P<seq>\d+))?"
    rf"{re.escape(LedgerFiles.EXTENSION)}"
)

# 가져오기에서 거래를 버리지 않는 진단 (txn id는 저장소가 직접 부여)
_IDENTITY_MESSAGES = (MISSING_TXN_ID, DUPLICATE_TXN_ID, MISSING_META_COMMENT)


# =============================================================================
# 예외
# =============================================================================


class LedgerStoreError(Exception):
    """저장소 작업 실패 (파일 읽기/쓰기 불가)

    파일 내용 문제는 예외가 아닌 진단으로 보고된다.
    """


class SourceReadError(LedgerStoreError):
    """가져오기 원본 파일을 읽을 수 없음

    활성 원장에 쓰기 전에 발생하므로 원장은 변경되지 않는다.
    """

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        super().__init__(f"failed to read source file {path}: {cause}")


class ManualTransactionError(LedgerStoreError):
    """수동 거래 입력이 올바른 거래로 렌더링되지 않음"""

    def __init__(self, message: str, diagnostics: Iterable[Diagnostic] = ()):
        self.diagnostics = tuple(diagnostics)
        super().__init__(message)


# =============================================================================
# 입력 / 결과 타입
# =============================================================================


@dataclass(frozen=True)
class ManualPostingInput:
    """수동 포스팅 입력

    remainder는 금액 뒤에 그대로 붙는 원가/가격/태그 텍스트.
    """

    account: str
    amount: Decimal | str
    commodity: str
    remainder: str | None = None


@dataclass(frozen=True)
class ManualTransactionInput:
    """수동 거래 입력

    datetime은 YYYY-MM-DD 또는 원장 문법의 전체 DATETIME.
    txn_id가 없으면 생성한다.
    """

    datetime: str
    payee: str
    narration: str | None = None
    status: str | None = None
    postings: tuple[ManualPostingInput, ...] = ()
    txn_id: str | None = None
    meta: tuple[str, ...] = ()


@dataclass(frozen=True)
class RotationResult:
    """rotate 결과

    month는 회전 전 활성 원장의 월 (빈 원장이면 None).
    """

    rotated: bool
    month: str | None = None
    archive_path: Path | None = None
    archived: int = 0


@dataclass(frozen=True)
class ImportStats:
    imported: int = 0
    skipped_duplicates: int = 0
    archived: int = 0
    skipped_invalid: int = 0


@dataclass(frozen=True)
class ImportResult:
    stats: ImportStats
    parse: ParseResult


@dataclass
class _Corpus:
    """아카이브 + 활성 원장을 한 인덱스로 검증한 결과"""

    index: TxnIdIndex
    history: list[Transaction] = field(default_factory=list)
    active: list[Transaction] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def to_result(self) -> ParseResult:
        return ParseResult(
            ok=not self.diagnostics.has_errors,
            diagnostics=tuple(self.diagnostics.sorted()),
            transactions=tuple(self.active),
            balances=tuple(compute_balances([*self.history, *self.active])),
        )


# =============================================================================
# 헬퍼
# =============================================================================


def validate_account_name(name: str) -> str:
    """계정 경로 검증 (콜론으로 구분된 2개 이상 세그먼트)

    Raises:
        ValueError: 형식이 맞지 않는 경우
    """
    if not isinstance(name, str) or not ACCOUNT_NAME_RE.fullmatch(name):
        raise ValueError(f"invalid account name: {name!r}")
    return name


def detect_ledger_month(text: str) -> str | None:
    """원장 텍스트의 월 (첫 헤더 줄의 YYYYMM)

    Returns:
        월 키, 헤더 형식이 아니면 "unknown", 내용이 비어 있으면 None
    """
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(";"):
            continue
        return month_key_from_text(line) or LedgerFiles.UNKNOWN_MONTH
    return None


def count_headers(text: str) -> int:
    return sum(1 for line in text.splitlines() if DATETIME_RE.match(line))


def join_blocks(existing: str, blocks: list[str]) -> str:
    """기존 내용 뒤에 블록을 빈 줄 하나로 구분해 이어 붙임

    기존 내용은 그대로 유지.
    """
    body = "\n".join(blocks)
    if not existing.strip():
        return body
    if existing.endswith(("\n\n", "\n\r\n")):
        return existing + body
    if existing.endswith("\n"):
        return existing + "\n" + body
    return existing + "\n\n" + body


def atomic_write_text(path: Path, text: str) -> None:
    """임시 파일에 쓴 뒤 os.replace로 교체"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise


def render_manual(entry: ManualTransactionInput, txn_id: str) -> str:
    """수동 입력 → 거래 블록 텍스트

    Raises:
        ManualTransactionError: 입력에 줄바꿈이 있거나 날짜/상태 마커 형식이 틀린 경우
    """
    values = [entry.datetime, entry.payee, entry.narration or "", entry.status or "", *entry.meta]
    for posting in entry.postings:
        values.extend([posting.account, str(posting.amount), posting.commodity, posting.remainder or ""])
    if any("\n" in value or "\r" in value for value in values):
        raise ManualTransactionError("manual transaction fields must not contain line breaks")

    if not DATETIME_RE.fullmatch(entry.datetime.strip()):
        raise ManualTransactionError(f"invalid datetime: {entry.datetime!r}")
    if entry.status and entry.status not in STATUS_MARKERS:
        raise ManualTransactionError(f"invalid status marker: {entry.status!r}")

    header = [entry.datetime.strip()]
    if entry.status:
        header.append(entry.status)
    header.append(quote(entry.payee))
    if entry.narration is not None:
        header.append(quote(entry.narration))
    header.append("; " + ", ".join([f"{TXN_TAG_KEY}:{txn_id}", *entry.meta]))

    lines = [" ".join(header)]
    for posting in entry.postings:
        if isinstance(posting.amount, Decimal):
            amount = format_decimal(posting.amount)
        else:
            amount = posting.amount.strip()
        line = f"{POSTING_INDENT}{posting.account}  {amount} {posting.commodity}"
        if posting.remainder and posting.remainder.strip():
            line = f"{line} {posting.remainder.strip()}"
        lines.append(line)
    return "\n".join(lines) + "\n"


def _parse_opening_balance(value: Decimal | str | int) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"invalid opening balance: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"invalid opening balance: {value!r}")
    return amount


@contextlib.contextmanager
def _os_errors(action: str) -> Iterator[None]:
    try:
        yield
    except OSError as e:
        raise LedgerStoreError(f"{action} failed: {e}") from e


# =============================================================================
# 저장소
# =============================================================================


class LedgerStore:
    """Generated Ledger 저장소

    모든 공개 작업은 월 회전을 먼저 수행하며, 같은 인스턴스에서 직렬화된다.

    Args:
        base_dir: 원장 디렉토리 (없으면 생성)
        opening_balance_account: 기초 잔액 상대 계정
        default_currency: add_account에서 통화 생략 시 사용

    Example:
        >>> store = LedgerStore(Path("data/generated"))
        >>> result = store.load("202601")
        >>> stats = store.import_sources(["binance.transactions"], "202601").stats
    """

    def __init__(
        self,
        base_dir: str | Path,
        *,
        opening_balance_account: str = Defaults.OPENING_BALANCE_ACCOUNT,
        default_currency: str = Defaults.CURRENCY,
    ):
        self.base_dir = Path(base_dir)
        self.opening_balance_account = validate_account_name(opening_balance_account)
        self.default_currency = default_currency
        self._lock = threading.RLock()

    # =========================================================================
    # 경로
    # =========================================================================

    @property
    def active_path(self) -> Path:
        return self.base_dir / LedgerFiles.ACTIVE

    @property
    def archive_dir(self) -> Path:
        return self.base_dir / LedgerFiles.ARCHIVE_DIR

    @property
    def sources_path(self) -> Path:
        return self.base_dir / LedgerFiles.SOURCES

    def archive_path(self, month: str, seq: int = 1) -> Path:
        suffix = f"-{seq}" if seq > 1 else ""
        return self.archive_dir / (
            f"{LedgerFiles.ARCHIVE_PREFIX}{month}{suffix}{LedgerFiles.EXTENSION}"
        )

    def archive_paths(self) -> list[Path]:
        """아카이브 파일 (시간순)

        unknown 월 아카이브가 가장 먼저, 같은 월은 번호순.
        """
        if not self.archive_dir.is_dir():
            return []

        found = []
        for path in self.archive_dir.iterdir():
            m = _ARCHIVE_NAME_RE.fullmatch(path.name)
            if not m or not path.is_file():
                continue
            month = m.group("month")
            known = month != LedgerFiles.UNKNOWN_MONTH
            found.append(((known, month if known else "", int(m.group("seq") or 1)), path))
        return [path for _, path in sorted(found)]

    def registered_sources(self) -> list[str]:
        """sources.json에 기록된 원본 경로"""
        if not self.sources_path.exists():
            return []
        with _os_errors("read source registry"):
            raw = self.sources_path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"sources.json 손상, 새로 작성: {e}")
            return []
        paths = data.get("paths", []) if isinstance(data, dict) else []
        return [p for p in paths if isinstance(p, str)]

    # =========================================================================
    # 공개 작업
    # =========================================================================

    def rotate(self, month: str) -> RotationResult:
        """활성 원장의 월이 month와 다르면 아카이브로 이동

        같은 월이거나 원장이 비어 있으면 아무 것도 하지 않음 (멱등).

        Args:
            month: 현재 월 (YYYYMM)

        Raises:
            ValueError: month 형식 오류
            LedgerStoreError: 파일 작업 실패
        """
        validate_month_key(month)
        with self._lock, _os_errors("rotate"):
            return self._rotate_unlocked(month)

    def load(self, month: str) -> ParseResult:
        """회전 후 활성 원장 파싱

        잔액은 아카이브(시간순) → 활성 원장 순으로 접은 값.
        txn id 유일성은 아카이브와 활성 원장 전체에서 검사.
        """
        validate_month_key(month)
        with self._lock, _os_errors("load"):
            self._rotate_unlocked(month)
            return self._scan().to_result()

    def import_sources(self, paths: Iterable[str | Path], month: str) -> ImportResult:
        """외부 원장 파일 가져오기

        파일 순서대로 처리하며, 이미 있는 txn id(아카이브, 활성 원장,
        같은 호출의 앞선 파일 포함)는 중복으로 건너뜀.
        원본 파일은 읽기만 한다.

        Args:
            paths: 원본 파일 경로 (순서 유지)
            month: 현재 월 (YYYYMM)

        Returns:
            ImportResult (통계 + 갱신된 파싱 결과)

        Raises:
            SourceReadError: 원본 파일을 읽을 수 없는 경우 (원장 변경 없음)
            LedgerStoreError: 원장 파일 작업 실패
        """
        validate_month_key(month)
        source_paths = [Path(p) for p in paths]

        with self._lock, _os_errors("import"):
            rotation = self._rotate_unlocked(month)

            # 모두 읽은 뒤에 쓰기 시작
            contents: list[tuple[Path, str]] = []
            for path in source_paths:
                try:
                    contents.append((path, path.read_text(encoding="utf-8")))
                except (OSError, UnicodeDecodeError) as e:
                    raise SourceReadError(path, e) from e

            corpus = self._scan()
            blocks: list[str] = []
            imported = skipped_duplicates = skipped_invalid = 0

            for path, text in contents:
                transactions, diagnostics = build_text(text, source=str(path))
                for txn in transactions:
                    blocking = [
                        d for d in diagnostics.errors_between(txn.line, txn.end_line)
                        if not d.message.startswith(_IDENTITY_MESSAGES)
                    ]
                    if blocking:
                        skipped_invalid += 1
                        logger.warning(
                            f"잘못된 거래 건너뜀: {path}:{txn.line} ({blocking[0].message})"
                        )
                        continue

                    txn_id = txn.txn_id
                    if txn_id is None:
                        txn_id = generate_txn_id()
                        txn = replace(txn, meta=txn.meta + (Tag(value=txn_id, key=TXN_TAG_KEY),))

                    location = SourceLocation(line=txn.line, source=str(path))
                    if corpus.index.register(txn_id, location) is not None:
                        skipped_duplicates += 1
                        logger.debug(f"중복 거래 건너뜀: txn={txn_id} ({path}:{txn.line})")
                        continue

                    blocks.append(render_transaction(txn))
                    imported += 1

            if blocks:
                self._append_unlocked(blocks)
            self._register_sources_unlocked(source_paths)

            stats = ImportStats(
                imported=imported,
                skipped_duplicates=skipped_duplicates,
                archived=rotation.archived,
                skipped_invalid=skipped_invalid,
            )
            logger.info(
                f"가져오기 완료: files={len(source_paths)}, imported={imported}, "
                f"duplicates={skipped_duplicates}, invalid={skipped_invalid}, "
                f"archived={rotation.archived}"
            )
            return ImportResult(stats=stats, parse=self._scan().to_result())

    def add_manual(self, entry: ManualTransactionInput, month: str) -> ParseResult:
        """수동 거래 추가

        렌더링한 블록을 단독으로 파싱해 검증한 뒤에만 추가한다.

        Args:
            entry: 수동 거래 입력
            month: 현재 월 (YYYYMM)

        Returns:
            갱신된 파싱 결과

        Raises:
            ManualTransactionError: 입력이 올바른 거래가 아니거나 txn id가 이미 있는 경우
            LedgerStoreError: 파일 작업 실패
        """
        validate_month_key(month)
        txn_id = entry.txn_id or generate_txn_id()
        text = render_manual(entry, txn_id)

        transactions, diagnostics = build_text(text)
        if diagnostics.has_errors or len(transactions) != 1:
            raise ManualTransactionError(
                "manual transaction is not valid ledger syntax",
                diagnostics=diagnostics.sorted(),
            )
        built = transactions[0]
        status = built.status.value if built.status else None
        if (
            built.txn_id != txn_id
            or built.payee != entry.payee
            or built.narration != entry.narration
            or status != (entry.status or None)
        ):
            raise ManualTransactionError("manual transaction header does not round-trip")

        with self._lock, _os_errors("add manual transaction"):
            self._rotate_unlocked(month)
            corpus = self._scan()
            previous = corpus.index.lookup(txn_id)
            if previous is not None:
                raise ManualTransactionError(
                    f"{DUPLICATE_TXN_ID} '{txn_id}' (first seen at {previous.describe()})"
                )

            self._append_unlocked([text])
            logger.info(f"수동 거래 추가: txn={txn_id}")
            return self._scan().to_result()

    def add_account(
        self,
        name: str,
        currency: str | None = None,
        opening_balance: Decimal | str | int | None = None,
        *,
        month: str | None = None,
        on: date | None = None,
    ) -> ParseResult:
        """계정 추가

        기초 잔액이 있으면 기초 잔액 계정과 짝을 이루는 거래를 추가.
        없으면 아무 것도 쓰지 않으며, 계정은 이후 포스팅될 때 나타난다.

        Args:
            name: 계정 경로 (assets:CBA:smartaccess)
            currency: 통화 (None이면 default_currency)
            opening_balance: 기초 잔액
            month: 현재 월 (None이면 로컬 기준 현재 월)
            on: 거래 날짜 (None이면 오늘)

        Raises:
            ValueError: 계정 이름 또는 기초 잔액 형식 오류
        """
        validate_account_name(name)
        month = month or current_month_key()

        if opening_balance is None:
            return self.load(month)

        amount = _parse_opening_balance(opening_balance)
        commodity = currency or self.default_currency
        entry = ManualTransactionInput(
            datetime=(on or today_local()).isoformat(),
            status="*",
            payee=Defaults.OPENING_BALANCE_PAYEE,
            narration=f"Open {name}",
            postings=(
                ManualPostingInput(account=name, amount=amount, commodity=commodity),
                ManualPostingInput(
                    account=self.opening_balance_account,
                    amount=amount.copy_negate(),
                    commodity=commodity,
                ),
            ),
        )
        result = self.add_manual(entry, month)
        logger.info(f"계정 추가: {name} ({format_decimal(amount)} {commodity})")
        return result

    # =========================================================================
    # 내부 (락 보유 상태에서 호출)
    # =========================================================================

    def _read(self, path: Path) -> str:
        if not path.exists():
            return ""
        return path.read_text(encoding="utf-8")

    def _rotate_unlocked(self, month: str) -> RotationResult:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        text = self._read(self.active_path)
        ledger_month = detect_ledger_month(text)
        if ledger_month is None or ledger_month == month:
            return RotationResult(rotated=False, month=ledger_month)

        seq = 1
        archive = self.archive_path(ledger_month)
        while archive.exists():
            seq += 1
            archive = self.archive_path(ledger_month, seq)

        self.archive_dir.mkdir(parents=True, exist_ok=True)
        os.replace(self.active_path, archive)
        atomic_write_text(self.active_path, "")

        archived = count_headers(text)
        logger.info(f"원장 회전: {ledger_month} → {archive.name} ({archived} transactions)")
        return RotationResult(
            rotated=True, month=ledger_month, archive_path=archive, archived=archived
        )

    def _scan(self) -> _Corpus:
        corpus = _Corpus(index=TxnIdIndex())
        for path in self.archive_paths():
            source = f"{LedgerFiles.ARCHIVE_DIR}/{path.name}"
            transactions, diagnostics = build_text(
                self._read(path), source=source, index=corpus.index
            )
            corpus.history.extend(transactions)
            corpus.diagnostics.extend(diagnostics.with_source(source))

        transactions, diagnostics = build_text(
            self._read(self.active_path), index=corpus.index
        )
        corpus.active.extend(transactions)
        corpus.diagnostics.extend(diagnostics)
        return corpus

    def _append_unlocked(self, blocks: list[str]) -> None:
        existing = self._read(self.active_path)
        atomic_write_text(self.active_path, join_blocks(existing, blocks))

    def _register_sources_unlocked(self, paths: list[Path]) -> None:
        registered = set(self.registered_sources())
        registered.update(str(p) for p in paths)
        atomic_write_text(
            self.sources_path,
            json.dumps({"paths": sorted(registered)}, indent=2, ensure_ascii=False) + "\n",
        )

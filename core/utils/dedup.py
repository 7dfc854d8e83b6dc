"""
Dedup 유틸리티

txn id 기반 중복 제거용 인덱스.
검증 패스마다 새로 만들어 Builder/Store에 명시적으로 전달 (전역 상태 없음).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class SourceLocation:
    """txn id가 처음 등장한 위치"""

    line: int
    source: str | None = None

    def describe(self) -> str:
        """진단 메시지용 위치 문자열

        Example:
            >>> SourceLocation(3, "archive/ledger-202601.transactions").describe()
            'archive/ledger-202601.transactions:3'
            >>> SourceLocation(3).describe()
            'line 3'
        """
        if self.source:
            return f"{self.source}:{self.line}"
        return f"line {self.line}"


class TxnIdIndex:
    """txn id → 최초 등장 위치

    먼저 등록된 위치를 유지하며, 이후 등록은 중복으로 보고.
    """

    def __init__(self) -> None:
        self._seen: dict[str, SourceLocation] = {}

    def register(self, txn_id: str, location: SourceLocation) -> SourceLocation | None:
        """txn id 등록

        Args:
            txn_id: 거래 ID
            location: 등장 위치

        Returns:
            이미 등록된 경우 최초 위치, 새로 등록된 경우 None
        """
        previous = self._seen.get(txn_id)
        if previous is not None:
            return previous
        self._seen[txn_id] = location
        return None

    def lookup(self, txn_id: str) -> SourceLocation | None:
        return self._seen.get(txn_id)

    def __contains__(self, txn_id: object) -> bool:
        return txn_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[str]:
        return iter(self._seen)

"""
진단 (Diagnostic) 수집

문법/의미 단계가 공통으로 사용하는 진단 타입.
파일 내용 문제는 예외가 아닌 진단으로만 보고한다.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator

from core.ledger.types import Severity


@dataclass(frozen=True)
class Diagnostic:
    """소스 위치가 있는 진단 메시지

    line/column은 1부터 시작.
    source는 아카이브 등 다른 파일에서 온 진단일 때만 채움.
    """

    line: int
    column: int
    message: str
    severity: Severity = Severity.ERROR
    source: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def format(self) -> str:
        """CLI 출력 형식: line L, column C: message"""
        prefix = f"{self.source}: " if self.source else ""
        return f"{prefix}line {self.line}, column {self.column}: {self.message}"


class Diagnostics:
    """진단 목록

    추가 순서를 유지하며, sorted()로 위치순 정렬 결과 반환.
    """

    def __init__(self, items: Iterable[Diagnostic] | None = None):
        self._items: list[Diagnostic] = list(items) if items else []

    def error(self, line: int, column: int, message: str) -> Diagnostic:
        """ERROR 진단 추가"""
        diagnostic = Diagnostic(line=line, column=column, message=message)
        self._items.append(diagnostic)
        return diagnostic

    def info(self, line: int, column: int, message: str) -> Diagnostic:
        """INFO 진단 추가"""
        diagnostic = Diagnostic(
            line=line, column=column, message=message, severity=Severity.INFO
        )
        self._items.append(diagnostic)
        return diagnostic

    def extend(self, other: Iterable[Diagnostic]) -> None:
        self._items.extend(other)

    def with_source(self, source: str) -> list[Diagnostic]:
        """모든 진단에 source를 붙인 복사본"""
        return [replace(d, source=source) for d in self._items]

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self._items)

    def errors_between(self, first_line: int, last_line: int) -> list[Diagnostic]:
        """[first_line, last_line] 구간의 ERROR 진단"""
        return [
            d for d in self._items
            if d.is_error and first_line <= d.line <= last_line
        ]

    def sorted(self) -> list[Diagnostic]:
        """(source, line, column) 순 정렬 (같은 위치는 추가 순서 유지)"""
        return sorted(self._items, key=lambda d: (d.source or "", d.line, d.column))

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

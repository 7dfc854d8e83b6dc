"""
원장 Lexer

원장 텍스트 → 토큰 스트림 변환.

줄 단위로 동작하며 줄 경계를 넘지 않는다 (따옴표 문자열도 한 줄 안에서 끝나야 함).
줄 시작 위치에 따라 의미가 달라지는 토큰:
- INDENT: 정확히 공백 4칸 뒤에 공백이 아닌 문자가 오는 경우만 (포스팅)
- DIRECTIVE: 앞 공백을 제외하고 ';'로 시작하는 줄 (주석)
- DATETIME (1열): 헤더 줄. 이후 ';' 전까지는 자유 텍스트(payee/narration) 모드

모든 줄은 NEWLINE 토큰으로 끝난다.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from core.ledger.types import POSTING_INDENT, STATUS_MARKERS


class TokenKind(str, Enum):
    """토큰 종류"""

    DATETIME = "DATETIME"
    NUMBER = "NUMBER"
    IDENT = "IDENT"
    PATHLIKE = "PATHLIKE"  # 콜론으로 연결된 2개 이상 세그먼트
    QUOTED = "QUOTED"
    WORDS = "WORDS"  # 따옴표 없는 payee/narration
    INDENT = "INDENT"
    DIRECTIVE = "DIRECTIVE"
    STATUS = "STATUS"
    SEMICOLON = "SEMICOLON"
    COMMA = "COMMA"
    COLON = "COLON"
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"
    LBRACE2 = "LBRACE2"
    RBRACE2 = "RBRACE2"
    AT = "AT"
    ATAT = "ATAT"
    NEWLINE = "NEWLINE"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Token:
    """토큰

    Attributes:
        kind: 토큰 종류
        text: 원문 그대로의 텍스트
        line: 줄 번호 (1부터)
        column: 열 번호 (1부터)
        value: 해석된 값 (QUOTED는 이스케이프 해제 문자열, ERROR는 오류 메시지)
    """

    kind: TokenKind
    text: str
    line: int
    column: int
    value: str = ""


DATETIME_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}"
    r"(?:T\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?(?:Z|[+-]\d{2}:\d{2})?)?"
)
NUMBER_RE = re.compile(r"[+-]?\d+(?:\.\d+)?")
WORD_RE = re.compile(r"[A-Za-z0-9_.\-]+(?::[A-Za-z0-9_.+\-]+)*")

# DATETIME/NUMBER 뒤에 올 수 있는 문자 (그 외에는 단어의 일부)
_BOUNDARY_CHARS = frozenset(' \t,;{}@"')

# 헤더 자유 텍스트(WORDS)를 끝내는 문자
_WORDS_STOP_CHARS = frozenset(';",:\t')

_PUNCTUATION: dict[str, TokenKind] = {
    ";": TokenKind.SEMICOLON,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
}


def _at_boundary(line: str, pos: int) -> bool:
    return pos >= len(line) or line[pos] in _BOUNDARY_CHARS


class _LineScanner:
    """한 줄을 스캔하는 내부 상태"""

    def __init__(self, text: str, line_no: int):
        self.text = text
        self.line_no = line_no
        self.pos = 0

    def token(self, kind: TokenKind, start: int, end: int, value: str | None = None) -> Token:
        raw = self.text[start:end]
        return Token(
            kind=kind,
            text=raw,
            line=self.line_no,
            column=start + 1,
            value=raw if value is None else value,
        )

    def skip_spaces(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in " \t":
            self.pos += 1

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def quoted(self) -> Token:
        """따옴표 문자열 (백슬래시 이스케이프)"""
        start = self.pos
        i = start + 1
        chars: list[str] = []
        while i < len(self.text):
            c = self.text[i]
            if c == "\\" and i + 1 < len(self.text):
                chars.append(self.text[i + 1])
                i += 2
                continue
            if c == '"':
                self.pos = i + 1
                return self.token(TokenKind.QUOTED, start, self.pos, "".join(chars))
            chars.append(c)
            i += 1

        self.pos = len(self.text)
        return self.token(TokenKind.ERROR, start, self.pos, "unterminated string")

    def header(self) -> Iterator[Token]:
        """헤더 줄: DATETIME 이후 ';' 전까지 상태 마커와 자유 텍스트"""
        self.skip_spaces()
        if not self.at_end() and self.text[self.pos] in STATUS_MARKERS:
            nxt = self.pos + 1
            if nxt >= len(self.text) or self.text[nxt] in " \t":
                yield self.token(TokenKind.STATUS, self.pos, nxt)
                self.pos = nxt

        while True:
            self.skip_spaces()
            if self.at_end():
                return
            c = self.text[self.pos]
            if c == ";":
                # 이후는 태그 목록: 일반 스캔으로 전환
                yield self.token(TokenKind.SEMICOLON, self.pos, self.pos + 1)
                self.pos += 1
                yield from self.general()
                return
            if c == '"':
                yield self.quoted()
                continue
            if c in _PUNCTUATION:
                yield self.token(_PUNCTUATION[c], self.pos, self.pos + 1)
                self.pos += 1
                continue

            start = self.pos
            end = start
            while end < len(self.text):
                ch = self.text[end]
                if ch in _WORDS_STOP_CHARS or self.text.startswith("  ", end):
                    break
                end += 1
            self.pos = end
            yield self.token(TokenKind.WORDS, start, start + len(self.text[start:end].rstrip()))

    def general(self) -> Iterator[Token]:
        """일반 스캔 (포스팅, 태그, 주석 본문)"""
        text = self.text
        while True:
            self.skip_spaces()
            if self.at_end():
                return
            start = self.pos
            c = text[start]

            if c in _PUNCTUATION:
                self.pos += 1
                yield self.token(_PUNCTUATION[c], start, self.pos)
                continue
            if c == "{" or c == "}":
                doubled = text.startswith(c * 2, start)
                if c == "{":
                    kind = TokenKind.LBRACE2 if doubled else TokenKind.LBRACE
                else:
                    kind = TokenKind.RBRACE2 if doubled else TokenKind.RBRACE
                self.pos += 2 if doubled else 1
                yield self.token(kind, start, self.pos)
                continue
            if c == "@":
                doubled = text.startswith("@@", start)
                self.pos += 2 if doubled else 1
                yield self.token(TokenKind.ATAT if doubled else TokenKind.AT, start, self.pos)
                continue
            if c == '"':
                yield self.quoted()
                continue

            m = DATETIME_RE.match(text, start)
            if m and _at_boundary(text, m.end()):
                self.pos = m.end()
                yield self.token(TokenKind.DATETIME, start, self.pos)
                continue

            m = NUMBER_RE.match(text, start)
            if m and _at_boundary(text, m.end()):
                self.pos = m.end()
                yield self.token(TokenKind.NUMBER, start, self.pos)
                continue

            m = WORD_RE.match(text, start)
            if m:
                self.pos = m.end()
                kind = TokenKind.PATHLIKE if ":" in m.group() else TokenKind.IDENT
                yield self.token(kind, start, self.pos)
                continue

            self.pos += 1
            yield self.token(TokenKind.ERROR, start, self.pos, f"unexpected character {c!r}")


def _tokenize_line(text: str, line_no: int) -> Iterator[Token]:
    scanner = _LineScanner(text, line_no)

    stripped = text.lstrip(" \t")
    if not stripped:
        pass
    elif stripped.startswith(";"):
        start = len(text) - len(stripped)
        yield scanner.token(TokenKind.DIRECTIVE, start, len(text), stripped[1:].strip())
    elif text.startswith(POSTING_INDENT) and len(text) > 4 and text[4] not in " \t":
        yield scanner.token(TokenKind.INDENT, 0, 4)
        scanner.pos = 4
        yield from scanner.general()
    else:
        m = DATETIME_RE.match(text)
        if m and _at_boundary(text, m.end()):
            scanner.pos = m.end()
            yield scanner.token(TokenKind.DATETIME, 0, scanner.pos)
            yield from scanner.header()
        else:
            yield from scanner.general()

    yield Token(TokenKind.NEWLINE, "\n", line_no, len(text) + 1)


def tokenize(text: str) -> Iterator[Token]:
    """원장 텍스트를 토큰 스트림으로 변환

    호출마다 새 제너레이터를 반환 (파일 간 상태 공유 없음).
    LF/CRLF 모두 지원.

    Args:
        text: 원장 전체 텍스트

    Yields:
        Token (줄마다 NEWLINE으로 종료)

    Example:
        >>> [t.kind.value for t in tokenize("    assets:cash 1 USD")]
        ['INDENT', 'PATHLIKE', 'NUMBER', 'IDENT', 'NEWLINE']
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for index, raw in enumerate(lines, start=1):
        yield from _tokenize_line(raw.rstrip("\r"), index)

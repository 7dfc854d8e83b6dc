"""
타임존 / 날짜 유틸리티

원장 DATETIME 파싱과 월 키(YYYYMM) 처리를 위한 헬퍼 함수
"""

import re
from datetime import date, datetime, timedelta, timezone

# 원장 DATETIME: 날짜 또는 날짜+시간 (소수 1~6자리, Z 또는 ±HH:MM)
LEDGER_DATETIME_RE = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d{1,6}))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?)?"
)

# 월 키: YYYYMM
MONTH_KEY_RE = re.compile(r"\d{4}(0[1-9]|1[0-2])")


def parse_ledger_datetime(text: str) -> date | datetime:
    """원장 DATETIME 문자열을 date 또는 datetime으로 변환

    Args:
        text: "2026-01-15" 또는 "2026-01-15T10:30:00.25+09:00" 형식

    Returns:
        시간이 없으면 date, 있으면 datetime (오프셋이 있으면 tz-aware)

    Raises:
        ValueError: 형식이 맞지 않거나 존재하지 않는 날짜/시간인 경우

    Example:
        >>> parse_ledger_datetime("2026-01-15")
        datetime.date(2026, 1, 15)
        >>> parse_ledger_datetime("2026-01-15T10:00:00Z").tzinfo
        datetime.timezone.utc
    """
    m = LEDGER_DATETIME_RE.fullmatch(text)
    if not m:
        raise ValueError(f"invalid datetime: {text}")

    day = date.fromisoformat(m.group("date"))
    if m.group("hour") is None:
        return day

    # 소수부는 마이크로초(6자리)로 패딩
    fraction = m.group("fraction") or ""
    microsecond = int(fraction.ljust(6, "0")) if fraction else 0

    tz_text = m.group("tz")
    tzinfo: timezone | None = None
    if tz_text == "Z":
        tzinfo = timezone.utc
    elif tz_text:
        sign = -1 if tz_text[0] == "-" else 1
        hours, minutes = int(tz_text[1:3]), int(tz_text[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError(f"invalid timezone offset: {tz_text}")
        tzinfo = timezone(sign * timedelta(hours=hours, minutes=minutes))

    return datetime(
        day.year,
        day.month,
        day.day,
        int(m.group("hour")),
        int(m.group("minute")),
        int(m.group("second")),
        microsecond,
        tzinfo=tzinfo,
    )


def month_key(value: date | datetime) -> str:
    """date/datetime → 월 키 (YYYYMM)

    Example:
        >>> month_key(date(2026, 1, 15))
        '202601'
    """
    return f"{value.year:04d}{value.month:02d}"


def month_key_from_text(text: str) -> str | None:
    """DATETIME으로 시작하는 문자열에서 월 키 추출

    날짜 형식만 확인 (YYYY-MM 접두사).

    Returns:
        월 키 또는 None (형식 불일치 시)

    Example:
        >>> month_key_from_text("2026-01-15 * \\"Kraken\\"")
        '202601'
        >>> month_key_from_text("; comment") is None
        True
    """
    if len(text) < 7 or text[4] != "-":
        return None
    year, month = text[0:4], text[5:7]
    if year.isdigit() and month.isdigit():
        return f"{year}{month}"
    return None


def validate_month_key(value: str) -> str:
    """월 키 형식 검증

    Raises:
        ValueError: YYYYMM 형식이 아닌 경우
    """
    if not isinstance(value, str) or not MONTH_KEY_RE.fullmatch(value):
        raise ValueError(f"month must be YYYYMM, got {value!r}")
    return value


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.
    """
    return datetime.now(timezone.utc)


def today_local() -> date:
    """로컬 타임존 기준 오늘 날짜"""
    return datetime.now().astimezone().date()


def current_month_key() -> str:
    """로컬 타임존 기준 현재 월 키"""
    return month_key(today_local())

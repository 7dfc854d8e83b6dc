"""
Idempotency 유틸리티

거래 고유 ID(txn id) 생성 및 형식 확인
규칙: ULID 형식 (48bit 밀리초 타임스탬프 + 80bit 난수, Crockford Base32 26자)
시간순 정렬 가능
"""

import secrets
import time

# Crockford Base32 (I, L, O, U 제외)
CROCKFORD_ALPHABET: str = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

TXN_ID_LENGTH: int = 26
_TIME_CHARS: int = 10
_RANDOM_BITS: int = 80


def _encode(value: int, length: int) -> str:
    chars = []
    for _ in range(length):
        chars.append(CROCKFORD_ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


def generate_txn_id(now_ms: int | None = None) -> str:
    """시간순 정렬 가능한 txn id 생성

    Args:
        now_ms: 타임스탬프 (밀리초, None이면 현재 시각)

    Returns:
        26자 ULID 문자열

    Example:
        >>> len(generate_txn_id())
        26
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    if now_ms < 0 or now_ms >= 1 << 48:
        raise ValueError(f"timestamp out of range: {now_ms}")

    randomness = secrets.randbits(_RANDOM_BITS)
    return _encode(now_ms, _TIME_CHARS) + _encode(randomness, TXN_ID_LENGTH - _TIME_CHARS)


def is_generated_txn_id(txn_id: str) -> bool:
    """generate_txn_id 형식인지 확인

    Example:
        >>> is_generated_txn_id("01J2N9R9")
        False
    """
    if not txn_id or len(txn_id) != TXN_ID_LENGTH:
        return False
    return all(c in CROCKFORD_ALPHABET for c in txn_id)

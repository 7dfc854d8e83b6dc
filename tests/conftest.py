"""
pytest 공통 fixture 정의

원장 텍스트 샘플, 임시 generated ledger 디렉토리, 설정 초기화
"""

import tempfile
from pathlib import Path

import pytest

from core.config.loader import Settings
from core.constants import EnvVars
from core.ledger import LedgerStore

BINANCE_LEDGER = (
    '2026-01-15 * "Binance" "Buy SOL" ; txn:01J2N9R9, src:binance:order:999\n'
    "    assets:exchange:binance:sol    10.000000 SOL {{ 230.00 USD, fee:0.10 USD, "
    'fee_to:expenses:fees:trading, venue:binance, note:"maker fee" }}\n'
    "    assets:cash:usd              -230.10 USD\n"
)

KRAKEN_LEDGER = (
    '2026-01-20 * "Kraken" "Sell BTC" ; txn:01J2NBK7, src:kraken:trade:def456\n'
    "    assets:exchange:kraken:btc  -0.01000000 BTC\n"
)


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """테스트마다 Settings 싱글턴과 환경 변수 초기화"""
    monkeypatch.delenv(EnvVars.GENERATED_DIR, raising=False)
    monkeypatch.delenv(EnvVars.SETTINGS_FILE, raising=False)
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def binance_text() -> str:
    """거래 1건, 포스팅 2개 (원가 주석 포함)"""
    return BINANCE_LEDGER


@pytest.fixture
def kraken_text() -> str:
    """거래 1건, 포스팅 1개"""
    return KRAKEN_LEDGER


@pytest.fixture
def ledger_dir(temp_dir: Path) -> Path:
    """Generated ledger 디렉토리"""
    path = temp_dir / "generated"
    path.mkdir()
    return path


@pytest.fixture
def store(ledger_dir: Path) -> LedgerStore:
    """임시 디렉토리의 LedgerStore"""
    return LedgerStore(ledger_dir)


@pytest.fixture
def binance_source(temp_dir: Path) -> Path:
    """Binance 원본 원장 파일"""
    path = temp_dir / "binance.transactions"
    path.write_text(BINANCE_LEDGER, encoding="utf-8")
    return path


@pytest.fixture
def kraken_source(temp_dir: Path) -> Path:
    """Kraken 원본 원장 파일"""
    path = temp_dir / "kraken.transactions"
    path.write_text(KRAKEN_LEDGER, encoding="utf-8")
    return path

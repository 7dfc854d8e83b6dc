"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증
"""

from pydantic import BaseModel, Field


class MonthRequest(BaseModel):
    """현재 월이 필요한 요청의 공통 필드"""

    now_yyyymm: str | None = Field(
        default=None,
        pattern=r"^\d{4}(0[1-9]|1[0-2])$",
        description="현재 월 (YYYYMM, None이면 서버 로컬 기준)",
    )


class ParseRequest(BaseModel):
    """원장 파일 파싱 요청"""

    path: str = Field(..., min_length=1, description="원장 파일 경로")


class LoadRequest(MonthRequest):
    """Generated ledger 로드 요청"""


class RotateRequest(MonthRequest):
    """Generated ledger 회전 요청"""


class ImportRequest(MonthRequest):
    """외부 원장 파일 가져오기 요청

    paths 순서대로 처리 (앞 파일의 txn id도 중복 검사에 반영).
    """

    paths: list[str] = Field(..., min_length=1, description="원본 파일 경로 목록")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "now_yyyymm": "202601",
                    "paths": ["/data/exports/binance-202601.transactions"],
                }
            ]
        }
    }


class ManualPostingRequest(BaseModel):
    """수동 포스팅"""

    account: str = Field(..., description="계정 경로 (assets:cash:usd)")
    amount: str = Field(..., description="부호 있는 금액 (문자열, 정밀도 보존)")
    commodity: str = Field(..., description="commodity (USD, BTC)")
    remainder: str | None = Field(
        default=None, description="금액 뒤에 붙는 원가/가격/태그 텍스트"
    )


class ManualTransactionRequest(MonthRequest):
    """수동 거래 추가 요청"""

    datetime: str = Field(..., description="YYYY-MM-DD 또는 원장 DATETIME")
    status: str | None = Field(
        default=None, pattern=r"^[*!]$", description="상태 마커 (* 또는 !)"
    )
    payee: str = Field(..., description="거래처")
    narration: str | None = Field(default=None, description="설명")
    postings: list[ManualPostingRequest] = Field(..., min_length=1, description="포스팅")
    txn_id: str | None = Field(default=None, description="거래 ID (None이면 생성)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "now_yyyymm": "202601",
                    "datetime": "2026-01-20",
                    "status": "*",
                    "payee": "Manual",
                    "narration": "Test",
                    "postings": [
                        {"account": "assets:cash:usd", "amount": "1.00", "commodity": "USD"},
                        {"account": "expenses:manual:test", "amount": "-1.00", "commodity": "USD"},
                    ],
                }
            ]
        }
    }


class AddAccountRequest(MonthRequest):
    """계정 추가 요청"""

    account_name: str = Field(..., description="계정 경로 (assets:CBA:smartaccess)")
    currency: str | None = Field(default=None, description="통화 (None이면 기본 통화)")
    opening_balance: str | None = Field(
        default=None, description="기초 잔액 (None이면 거래를 만들지 않음)"
    )

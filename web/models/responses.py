"""
응답 스키마 (Pydantic)

Web API 응답 데이터 직렬화.
금액은 정밀도 보존을 위해 문자열로 반환.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    version: str = Field(..., description="API 버전")
    generated_dir: str = Field(..., description="Generated ledger 디렉토리")
    timestamp: datetime = Field(..., description="응답 시간 (UTC)")


class DiagnosticResponse(BaseModel):
    """진단"""

    line: int = Field(..., description="줄 번호 (1부터)")
    column: int = Field(..., description="열 번호 (1부터)")
    message: str = Field(..., description="메시지")
    severity: str = Field(default="error", description="심각도 (error/info)")
    source: str | None = Field(default=None, description="아카이브 파일 이름")


class PostingResponse(BaseModel):
    """포스팅"""

    account: str = Field(..., description="계정 경로")
    amount: str = Field(..., description="부호 있는 금액")
    commodity: str = Field(..., description="commodity")
    remainder: str | None = Field(
        default=None, description="원가/가격/태그 텍스트 (없으면 None)"
    )


class TransactionResponse(BaseModel):
    """거래"""

    date: str = Field(..., description="표시용 날짜 (YYYY-MM-DD)")
    datetime: str = Field(..., description="원문 DATETIME")
    status: str | None = Field(default=None, description="상태 마커 (* / !)")
    payee: str | None = Field(default=None, description="거래처")
    narration: str | None = Field(default=None, description="설명")
    meta: str = Field(..., description="원문 태그 텍스트")
    txn_id: str | None = Field(default=None, description="거래 ID")
    line: int = Field(..., description="헤더 줄 번호")
    postings: list[PostingResponse] = Field(default_factory=list)


class CommodityTotalResponse(BaseModel):
    commodity: str = Field(..., description="commodity")
    amount: str = Field(..., description="누적 합계")


class AccountBalanceResponse(BaseModel):
    """계정 잔액"""

    account: str = Field(..., description="계정 경로")
    group: str = Field(..., description="표시 그룹 (첫 세그먼트)")
    totals: list[CommodityTotalResponse] = Field(default_factory=list)


class ParseResponse(BaseModel):
    """파싱 결과"""

    ok: bool = Field(..., description="ERROR 진단이 없으면 True")
    diagnostics: list[DiagnosticResponse] = Field(default_factory=list)
    transactions: list[TransactionResponse] = Field(default_factory=list)
    balances: list[AccountBalanceResponse] = Field(default_factory=list)


class ImportStatsResponse(BaseModel):
    """가져오기 통계"""

    imported: int = Field(..., description="추가된 거래 수")
    skipped_duplicates: int = Field(..., description="중복으로 건너뛴 거래 수")
    archived: int = Field(..., description="이번 호출의 회전으로 아카이브된 거래 수")
    skipped_invalid: int = Field(default=0, description="오류로 건너뛴 거래 수")


class ImportResponse(BaseModel):
    """가져오기 결과"""

    stats: ImportStatsResponse
    parse: ParseResponse


class RotateResponse(BaseModel):
    """회전 결과"""

    generated_dir: str = Field(..., description="Generated ledger 디렉토리")
    rotated: bool = Field(..., description="회전 수행 여부")
    archive: str | None = Field(default=None, description="생성된 아카이브 파일 이름")
    archived: int = Field(default=0, description="아카이브된 거래 수")

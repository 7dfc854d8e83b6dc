"""
Ledger API 라우트

원장 파싱 및 generated ledger 작업 API.
파일 I/O를 수행하므로 동기 핸들러로 정의 (스레드풀에서 실행).
"""

from fastapi import APIRouter, Depends, HTTPException

from core.ledger import LedgerStoreError, ManualTransactionError, SourceReadError
from web.dependencies import get_ledger_service
from web.models.requests import (
    AddAccountRequest,
    ImportRequest,
    LoadRequest,
    ManualTransactionRequest,
    ParseRequest,
    RotateRequest,
)
from web.models.responses import ImportResponse, ParseResponse, RotateResponse
from web.services.ledger_service import LedgerService

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


def _manual_error_detail(e: ManualTransactionError) -> dict:
    return {
        "message": str(e),
        "diagnostics": [
            {"line": d.line, "column": d.column, "message": d.message}
            for d in e.diagnostics
        ],
    }


@router.post("/parse", response_model=ParseResponse)
def parse_ledger_file(
    request: ParseRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ParseResponse:
    """원장 파일 파싱

    내용 오류는 진단으로 반환 (ok=False). 파일을 읽을 수 없을 때만 HTTP 오류.
    """
    try:
        return service.parse(request.path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"File not found: {request.path}")
    except (OSError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Failed to read file: {e}")


@router.post("/load", response_model=ParseResponse)
def load_generated_ledger(
    request: LoadRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ParseResponse:
    """Generated ledger 로드 (회전 후 파싱)"""
    try:
        return service.load(request.now_yyyymm)
    except LedgerStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/rotate", response_model=RotateResponse)
def rotate_generated_ledger(
    request: RotateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> RotateResponse:
    """월이 바뀌었으면 활성 원장을 아카이브로 이동"""
    try:
        return service.rotate(request.now_yyyymm)
    except LedgerStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/import", response_model=ImportResponse)
def import_generated_sources(
    request: ImportRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ImportResponse:
    """외부 원장 파일 가져오기 (txn id 중복 제거)"""
    try:
        return service.import_sources(request.paths, request.now_yyyymm)
    except SourceReadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LedgerStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/manual", response_model=ParseResponse)
def add_manual_to_generated_ledger(
    request: ManualTransactionRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ParseResponse:
    """수동 거래 추가"""
    try:
        return service.add_manual(request)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ManualTransactionError as e:
        raise HTTPException(status_code=422, detail=_manual_error_detail(e))
    except LedgerStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/accounts", response_model=ParseResponse)
def add_account_to_generated_ledger(
    request: AddAccountRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> ParseResponse:
    """계정 추가 (기초 잔액이 있으면 기초 잔액 거래 생성)"""
    try:
        return service.add_account(request)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ManualTransactionError as e:
        raise HTTPException(status_code=422, detail=_manual_error_detail(e))
    except LedgerStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))

"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AddAccountRequest,
    ImportRequest,
    LoadRequest,
    ManualPostingRequest,
    ManualTransactionRequest,
    ParseRequest,
    RotateRequest,
)
from web.models.responses import (
    AccountBalanceResponse,
    DiagnosticResponse,
    HealthResponse,
    ImportResponse,
    ImportStatsResponse,
    ParseResponse,
    PostingResponse,
    RotateResponse,
    TransactionResponse,
)

__all__ = [
    # Requests
    "AddAccountRequest",
    "ImportRequest",
    "LoadRequest",
    "ManualPostingRequest",
    "ManualTransactionRequest",
    "ParseRequest",
    "RotateRequest",
    # Responses
    "AccountBalanceResponse",
    "DiagnosticResponse",
    "HealthResponse",
    "ImportResponse",
    "ImportStatsResponse",
    "ParseResponse",
    "PostingResponse",
    "RotateResponse",
    "TransactionResponse",
]

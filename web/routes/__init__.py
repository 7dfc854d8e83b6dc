"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- ledger: 원장 파싱 및 generated ledger 작업
"""

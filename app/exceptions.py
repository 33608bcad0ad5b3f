import logging
import traceback
from typing import Optional
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from os import getenv

logger = logging.getLogger(__name__)


class AppException(Exception):
    """애플리케이션 커스텀 예외 베이스 클래스"""
    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail or message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        """HTTP 상태 코드 반환"""
        return status.HTTP_500_INTERNAL_SERVER_ERROR


class NotFoundError(AppException):
    """리소스를 찾을 수 없음 (404)"""
    @property
    def status_code(self) -> int:
        return status.HTTP_404_NOT_FOUND


class ValidationError(AppException):
    """입력 검증 실패 (400)"""
    @property
    def status_code(self) -> int:
        return status.HTTP_400_BAD_REQUEST


class ConflictError(AppException):
    """리소스 충돌 (409)"""
    @property
    def status_code(self) -> int:
        return status.HTTP_409_CONFLICT


class ForbiddenError(AppException):
    """권한 없음 (403)"""
    @property
    def status_code(self) -> int:
        return status.HTTP_403_FORBIDDEN


class InternalError(AppException):
    """예상치 못한 서버 에러 (500)"""
    pass


# ---------------------------------------------------------------------
# 투표 엔진 예외 (호출자가 종류별로 다른 메시지를 보여줄 수 있도록 모두 구분)
# ---------------------------------------------------------------------

class ProposalNotFoundError(NotFoundError):
    """존재하지 않거나 삭제된(또는 볼 수 없는) 제안"""
    def __init__(self, proposal_id, detail: Optional[str] = None):
        super().__init__(
            message="Proposal not found",
            detail=detail or f"Proposal with id {proposal_id} not found"
        )


class NotEligibleError(ForbiddenError):
    """역할 또는 건물 범위 불일치로 투표 자격 없음"""
    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            message="Not eligible to vote",
            detail=detail or "You are not eligible to vote on this proposal"
        )


class PrivilegedActionForbiddenError(ForbiddenError):
    """권한 없는 사용자의 제안 생성/수정/집계 시도 (또는 접근 권한 없는 건물 대상)"""
    def __init__(self, operation: str, detail: Optional[str] = None):
        super().__init__(
            message="Forbidden",
            detail=detail or f"Only Admin or Manager can {operation}"
        )


class VoteWindowNotOpenYetError(ValidationError):
    def __init__(self, start_time):
        super().__init__(
            message="Voting has not started yet",
            detail=f"Voting opens at {start_time.isoformat()}"
        )


class VoteWindowClosedError(ValidationError):
    def __init__(self, end_time):
        super().__init__(
            message="Voting is closed",
            detail=f"Voting closed at {end_time.isoformat()}"
        )


class TallyNotYetDueError(ValidationError):
    def __init__(self, end_time):
        super().__init__(
            message="Tally not yet due",
            detail=f"Proposal can be tallied after {end_time.isoformat()}"
        )


class AlreadyTalliedError(ConflictError):
    def __init__(self, proposal_id):
        super().__init__(
            message="Proposal already tallied",
            detail=f"Proposal {proposal_id} has already been tallied and is final"
        )


class InvalidProposalWindowError(ValidationError):
    def __init__(self):
        super().__init__(
            message="Invalid proposal window",
            detail="end_time must be later than start_time"
        )


class ProposalLockedError(ConflictError):
    """첫 투표 이후에는 제안 수정/삭제 불가 (스냅샷된 가중치 보호)"""
    def __init__(self, proposal_id, operation: str):
        super().__init__(
            message="Proposal locked",
            detail=f"Cannot {operation} proposal {proposal_id} after votes have been cast"
        )


def is_development() -> bool:
    """개발 환경인지 확인"""
    env = getenv("ENVIRONMENT", "development").lower()
    return env in ("development", "dev", "local")


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """커스텀 애플리케이션 예외 핸들러"""
    response_data = {
        "error": exc.__class__.__name__,
        "message": exc.message,
        "detail": exc.detail,
    }

    # 개발 환경에서만 스택 트레이스 포함
    if is_development():
        response_data["traceback"] = traceback.format_exc()

    return JSONResponse(
        status_code=exc.status_code,
        content=response_data,
    )


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 스키마 검증 실패 핸들러 (알 수 없는 투표 방식/선택지 등, 422)"""
    errors = exc.errors()
    fields = ", ".join(
        ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        for error in errors
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "RequestValidationError",
            "message": "Invalid request",
            "detail": f"Invalid fields: {fields}" if fields else "Invalid request",
            "errors": jsonable_encoder(errors),
        },
    )


async def sqlalchemy_integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """SQLAlchemy IntegrityError 핸들러 (중복 키, 외래 키 제약 등)"""
    error_message = str(exc.orig) if hasattr(exc, 'orig') else str(exc)

    # 중복 키 에러 감지
    if "unique" in error_message.lower() or "duplicate" in error_message.lower():
        app_exc = ConflictError(
            message="Resource conflict",
            detail=f"Resource already exists: {error_message}"
        )
    else:
        app_exc = ConflictError(
            message="Database integrity error",
            detail=error_message
        )

    return await app_exception_handler(request, app_exc)


async def sqlalchemy_operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """SQLAlchemy OperationalError 핸들러 (DB 연결 에러 등)"""
    error_message = str(exc.orig) if hasattr(exc, 'orig') else str(exc)
    logger.error(f"Database operation failed: {error_message}")

    app_exc = InternalError(
        message="Database operation failed",
        detail=error_message if is_development() else "Database operation failed"
    )

    return await app_exception_handler(request, app_exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """일반 예외 핸들러 (예상치 못한 에러)"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)

    app_exc = InternalError(
        message="Internal server error",
        detail=str(exc) if is_development() else "An unexpected error occurred"
    )

    # 개발 환경에서만 원본 예외 정보 포함
    if is_development():
        app_exc.detail = f"{app_exc.detail}\n\nTraceback:\n{traceback.format_exc()}"

    return await app_exception_handler(request, app_exc)

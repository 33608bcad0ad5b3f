from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from app.exceptions import (
    AppException,
    app_exception_handler,
    request_validation_error_handler,
    sqlalchemy_integrity_error_handler,
    sqlalchemy_operational_error_handler,
    general_exception_handler,
)


def register_error_handlers(app: FastAPI) -> None:
    """
    전역 예외 핸들러 등록

    모든 오류 응답은 {"error", "message", "detail"} 형태로 통일한다.
    error에는 예외 클래스 이름이 들어가므로 호출자가 종류별로 분기할 수 있다.
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(IntegrityError, sqlalchemy_integrity_error_handler)
    app.add_exception_handler(OperationalError, sqlalchemy_operational_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

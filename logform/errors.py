"""Error taxonomy shared by every service and route.

Services raise these; the exception handlers in ``logform.app`` turn them
into ``{"error": ...}`` responses with the matching status code.
"""

from __future__ import annotations

from typing import Dict, Optional


class LogformError(Exception):
    """Base exception for all application errors."""

    status_code = 500
    kind = "internal"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class InputValidationError(LogformError):
    """Client-correctable problem with the submitted request."""

    status_code = 400
    kind = "input"

    def __init__(self, message: str, *, detail: Optional[str] = None, status_code: int = 400) -> None:
        super().__init__(message, detail=detail)
        self.status_code = status_code


class PayloadTooLargeError(InputValidationError):
    """Document or request body above a configured ceiling."""

    kind = "too_large"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message, detail=detail, status_code=413)


class OriginNotAllowedError(LogformError):
    status_code = 403
    kind = "origin"


class UpstreamServiceError(LogformError):
    """Extraction collaborator unreachable or faulted. Safe for the caller to retry."""

    status_code = 503
    kind = "upstream"


class ResponseShapeError(LogformError):
    """Extraction collaborator answered with malformed or incomplete JSON."""

    status_code = 502
    kind = "shape"


class StorageError(LogformError):
    status_code = 400
    kind = "storage"


class StoreConnectionError(StorageError):
    kind = "connection"


class StorageProvisioningError(StorageError):
    """Table could not be created. The message always carries guidance for the user."""

    kind = "provisioning"

    def __init__(
        self,
        message: str,
        *,
        detail: Optional[str] = None,
        sql: Optional[str] = None,
        manual_required: bool = False,
    ) -> None:
        super().__init__(message, detail=detail)
        self.sql = sql
        self.manual_required = manual_required


class StorageWriteError(StorageError):
    kind = "write"


# Generic user-facing text per error kind, shown in production.
MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "input": "The request is invalid. Please check the file and try again.",
        "too_large": "The file is too large.",
        "origin": "Access denied.",
        "upstream": "The analysis service is temporarily unavailable. Please try again shortly.",
        "shape": "The analysis result was incomplete. Please try again.",
        "storage": "The database request failed.",
        "connection": "Could not connect to the database. Check the URL and API key.",
        "provisioning": "The table could not be created. Create it manually in the database console.",
        "write": "Saving the record failed.",
        "internal": "A server error occurred.",
    },
    "ko": {
        "input": "잘못된 요청입니다. 파일을 다시 확인해주세요.",
        "too_large": "파일 크기가 너무 큽니다.",
        "origin": "접근이 거부되었습니다.",
        "upstream": "AI 서비스가 일시적으로 이용할 수 없습니다. 잠시 후 다시 시도해주세요.",
        "shape": "분석 결과가 올바르지 않습니다. 다시 시도해주세요.",
        "storage": "데이터베이스 요청에 실패했습니다.",
        "connection": "데이터베이스 연결에 실패했습니다. URL과 API Key를 확인해주세요.",
        "provisioning": "테이블을 생성할 수 없습니다. 데이터베이스 콘솔에서 수동으로 테이블을 생성해주세요.",
        "write": "데이터 저장에 실패했습니다.",
        "internal": "서버 오류가 발생했습니다.",
    },
}


def public_message(exc: Exception, *, production: bool, locale: str = "en") -> str:
    """Text safe to show the caller for ``exc``.

    Outside production the underlying detail is appended for diagnosis.
    """
    catalog = MESSAGES.get(locale) or MESSAGES["en"]
    if not isinstance(exc, LogformError):
        if production:
            return catalog["internal"]
        return f"{catalog['internal']} ({exc})"
    if production:
        return catalog.get(exc.kind, catalog["internal"])
    if exc.detail:
        return f"{exc.message}: {exc.detail}"
    return exc.message

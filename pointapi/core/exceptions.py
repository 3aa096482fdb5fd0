from enum import Enum
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )


class ServiceException(Exception):
    """Base exception for service layer errors"""
    pass


class PointErrorKind(str, Enum):
    """포인트 엔진 에러 분류 (전송 계층이 응답 코드로 변환할 때 사용)"""

    INVALID_IDENTITY = "INVALID_IDENTITY"
    NOT_FOUND = "NOT_FOUND"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"


class PointError(ServiceException):
    """Base exception for point engine errors

    kind / error_code는 안정적인 값이므로 호출자는 메시지 대신 이 값으로 분기한다.
    """

    kind: PointErrorKind = PointErrorKind.STORAGE_FAILURE
    error_code: str = "POINT_000"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "포인트 처리에 실패했습니다."

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": {"kind": self.kind.value, **self.details},
            },
        }


class InvalidUserIdError(PointError):
    kind = PointErrorKind.INVALID_IDENTITY
    error_code = "POINT_001"
    default_message = "유효하지 않은 User ID 입니다."


class UserNotFoundError(PointError):
    kind = PointErrorKind.NOT_FOUND
    error_code = "POINT_002"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "유저가 존재하지 않습니다."


class InvalidAmountError(PointError):
    """금액 부호/크기 조건 위반"""

    kind = PointErrorKind.INVALID_AMOUNT
    error_code = "POINT_003"
    default_message = "유효하지 않은 포인트 금액입니다."


class NonPositiveChargeAmountError(InvalidAmountError):
    error_code = "POINT_003"
    default_message = "0원 이하의 포인트 충전은 할 수 없습니다."


class ChargeAmountExceededError(InvalidAmountError):
    error_code = "POINT_004"
    default_message = "1회 충전 포인트는 최대 한도를 넘길 수 없습니다."


class NegativeSpendAmountError(InvalidAmountError):
    error_code = "POINT_005"
    default_message = "0원 미만의 포인트를 사용할 수 없습니다."


class PointLimitExceededError(PointError):
    kind = PointErrorKind.LIMIT_EXCEEDED
    error_code = "POINT_006"
    default_message = "총 포인트 금액이 최대 한도를 넘길 수 없습니다."


class InsufficientBalanceError(PointError):
    kind = PointErrorKind.INSUFFICIENT_BALANCE
    error_code = "BALANCE_001"
    default_message = "가진 포인트보다 큰 포인트를 사용할 수 없습니다."


class StorageError(PointError):
    kind = PointErrorKind.STORAGE_FAILURE
    error_code = "STORAGE_001"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "포인트 저장소 처리 중 오류가 발생했습니다."


class PointLockTimeoutError(PointError):
    kind = PointErrorKind.LOCK_TIMEOUT
    error_code = "LOCK_001"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "다른 요청을 처리 중입니다. 잠시 후 다시 시도해주세요."

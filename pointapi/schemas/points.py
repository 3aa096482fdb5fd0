from enum import Enum
from pydantic import BaseModel, Field
from datetime import datetime


class TransactionType(str, Enum):
    """포인트 거래 종류"""

    CHARGE = "CHARGE"
    USE = "USE"


class UserPoint(BaseModel):
    """유저 포인트 잔액"""

    user_id: int = Field(..., description="유저 ID")
    balance: int = Field(..., description="현재 포인트 잔액")
    updated_at: datetime = Field(..., description="마지막 변경 시각")

    class Config:
        from_attributes = True


class PointHistory(BaseModel):
    """포인트 충전/사용 이력"""

    id: int = Field(..., description="이력 ID (삽입 순서)")
    user_id: int = Field(..., description="유저 ID")
    amount: int = Field(..., description="거래 후 잔액")
    type: TransactionType = Field(..., description="거래 종류")
    timestamp: datetime = Field(..., description="거래 시각")

    class Config:
        from_attributes = True


class PointAmountRequest(BaseModel):
    """포인트 충전/사용 요청

    금액의 부호/한도 검증은 서비스 계층에서 에러 종류별로 수행하므로 여기서는 제약을 두지 않는다.
    """

    amount: int = Field(..., description="포인트 금액")

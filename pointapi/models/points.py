"""
포인트 시스템 데이터 모델

유저별 현재 잔액(user_points)과 잔액 변경 이력(point_histories) 두 테이블을 정의합니다.
두 테이블은 서로 독립적이며, 잔액 변경과 이력 기록의 일관성은
서비스 계층의 유저별 락이 보장합니다 (DB 트랜잭션으로 묶지 않음).
"""

from sqlalchemy import Column, BigInteger, Integer, Enum as SAEnum, Index

from pointapi.models.base import BaseModel, KSTDateTime
from pointapi.schemas.points import TransactionType

# SQLite는 INTEGER PRIMARY KEY만 자동 증가하므로 방언별로 타입을 분기
AutoIncrementId = BigInteger().with_variant(Integer(), "sqlite")


class UserPoint(BaseModel):
    """
    유저 포인트 잔액 테이블 - 유저당 한 행

    - user_id는 외부에서 부여된 식별자 (자동 증가 아님)
    - balance는 0 이상 MAX_POINT 이하로 유지됨 (서비스 계층에서 검증)
    """

    __tablename__ = "user_points"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)

    # 현재 잔액
    balance = Column(BigInteger, nullable=False, default=0)

    # 마지막 변경 시각 - 애플리케이션에서 기록 (이력의 timestamp와 동일한 값)
    updated_at = Column(KSTDateTime, nullable=False)


class PointHistory(BaseModel):
    """
    포인트 이력 테이블 - 충전/사용 1건당 한 행

    이 테이블은 다음 원칙을 따릅니다:
    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 순서성(Ordered): id는 삽입 순서대로 증가
    3. amount는 변동량이 아니라 거래 후 잔액
    """

    __tablename__ = "point_histories"
    __table_args__ = (Index("ix_point_histories_user_id_id", "user_id", "id"),)

    id = Column(AutoIncrementId, primary_key=True, autoincrement=True)

    user_id = Column(BigInteger, nullable=False)

    # 거래 후 잔액
    amount = Column(BigInteger, nullable=False)

    type = Column(SAEnum(TransactionType, name="transaction_type"), nullable=False)

    # 거래 확정 시각
    timestamp = Column(KSTDateTime, nullable=False)

"""
포인트 리포지토리 - 잔액 저장소 / 이력 로그의 데이터베이스 구현

- UserPointRepository: user_points 테이블에 대한 단건 조회 / upsert
- PointHistoryRepository: point_histories 테이블에 대한 추가 / 유저별 전체 조회

두 리포지토리는 서로의 트랜잭션을 모릅니다. 잔액 변경과 이력 추가를 하나의
단위로 묶는 것은 PointService가 유저별 락 안에서 순서대로 호출하는 방식으로 보장합니다.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import asc
from sqlalchemy.orm import sessionmaker

from pointapi.models.points import (
    UserPoint as UserPointModel,
    PointHistory as PointHistoryModel,
)
from pointapi.repositories.base import BaseRepository, BalanceStore, HistoryLog
from pointapi.schemas.points import PointHistory, TransactionType, UserPoint
from pointapi.utils.timezone_utils import get_kst_now


class UserPointRepository(BaseRepository[UserPointModel, UserPoint], BalanceStore):
    """유저 포인트 잔액 리포지토리"""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(UserPointModel, UserPoint, session_factory)

    def read_balance(self, user_id: int) -> Optional[UserPoint]:
        with self._session() as db:
            instance = db.get(self.model_class, user_id)
            return self._to_schema(instance)

    def write_balance(self, user_id: int, balance: int) -> UserPoint:
        """
        잔액 upsert

        Args:
            user_id: 유저 ID
            balance: 저장할 잔액

        Returns:
            UserPoint: 저장된 레코드 (updated_at은 이번 쓰기 시각)
        """
        with self._session() as db:
            instance = db.get(self.model_class, user_id)
            if instance is None:
                instance = self.model_class(user_id=user_id)
                db.add(instance)

            instance.balance = balance
            instance.updated_at = get_kst_now()
            db.flush()
            return self._to_schema(instance)

    def delete_balance(self, user_id: int) -> None:
        with self._session() as db:
            instance = db.get(self.model_class, user_id)
            if instance is not None:
                db.delete(instance)


class PointHistoryRepository(BaseRepository[PointHistoryModel, PointHistory], HistoryLog):
    """포인트 이력 리포지토리 (추가 전용)"""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(PointHistoryModel, PointHistory, session_factory)

    def append(
        self,
        user_id: int,
        amount: int,
        transaction_type: TransactionType,
        timestamp: datetime,
    ) -> PointHistory:
        with self._session() as db:
            instance = self.model_class(
                user_id=user_id,
                amount=amount,
                type=transaction_type,
                timestamp=timestamp,
            )
            db.add(instance)
            db.flush()
            return self._to_schema(instance)

    def read_all(self, user_id: int) -> List[PointHistory]:
        with self._session() as db:
            instances = (
                db.query(self.model_class)
                .filter(self.model_class.user_id == user_id)
                .order_by(asc(self.model_class.id))
                .all()
            )
            return [self._to_schema(instance) for instance in instances]

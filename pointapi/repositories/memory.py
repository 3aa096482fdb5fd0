"""
인메모리 잔액 저장소 / 이력 로그

프로세스 메모리에 데이터를 보관하는 가벼운 구현체로, 로컬 실행과 테스트에 사용합니다.
latency_ms를 주면 매 호출마다 지연을 넣어 느린 테이블을 흉내냅니다.

잔액 저장소는 자체적인 동시성 보장을 하지 않습니다. 같은 유저에 대한 읽기-수정-쓰기는
반드시 PointService의 유저별 락 안에서 이루어져야 합니다.
"""

import itertools
import threading
import time
from datetime import datetime
from typing import Dict, List, Optional

from pointapi.repositories.base import BalanceStore, HistoryLog
from pointapi.schemas.points import PointHistory, TransactionType, UserPoint
from pointapi.utils.timezone_utils import get_kst_now


class _Throttled:
    def __init__(self, latency_ms: int = 0):
        self.latency_ms = latency_ms

    def _throttle(self) -> None:
        if self.latency_ms > 0:
            time.sleep(self.latency_ms / 1000)


class InMemoryBalanceStore(_Throttled, BalanceStore):
    """dict 기반 유저 잔액 테이블"""

    def __init__(self, latency_ms: int = 0, initial_balances: Optional[Dict[int, int]] = None):
        super().__init__(latency_ms)
        self._table: Dict[int, UserPoint] = {}
        for user_id, balance in (initial_balances or {}).items():
            self.seed(user_id, balance)

    def read_balance(self, user_id: int) -> Optional[UserPoint]:
        self._throttle()
        return self._table.get(user_id)

    def write_balance(self, user_id: int, balance: int) -> UserPoint:
        self._throttle()
        user_point = UserPoint(user_id=user_id, balance=balance, updated_at=get_kst_now())
        self._table[user_id] = user_point
        return user_point

    def delete_balance(self, user_id: int) -> None:
        self._throttle()
        self._table.pop(user_id, None)

    def seed(self, user_id: int, balance: int = 0) -> UserPoint:
        """지연 없이 잔액 레코드 생성 (픽스처/시드용)"""
        user_point = UserPoint(user_id=user_id, balance=balance, updated_at=get_kst_now())
        self._table[user_id] = user_point
        return user_point

    def __len__(self) -> int:
        return len(self._table)


class InMemoryHistoryLog(_Throttled, HistoryLog):
    """list 기반 이력 테이블

    id 발급과 추가는 내부 가드 안에서 수행되어 서로 다른 유저의 동시 추가에도 id가 겹치지 않는다.
    """

    def __init__(self, latency_ms: int = 0):
        super().__init__(latency_ms)
        self._rows: List[PointHistory] = []
        self._ids = itertools.count(1)
        self._guard = threading.Lock()

    def append(
        self,
        user_id: int,
        amount: int,
        transaction_type: TransactionType,
        timestamp: datetime,
    ) -> PointHistory:
        self._throttle()
        with self._guard:
            history = PointHistory(
                id=next(self._ids),
                user_id=user_id,
                amount=amount,
                type=transaction_type,
                timestamp=timestamp,
            )
            self._rows.append(history)
        return history

    def read_all(self, user_id: int) -> List[PointHistory]:
        self._throttle()
        with self._guard:
            return [row for row in self._rows if row.user_id == user_id]

    def __len__(self) -> int:
        return len(self._rows)

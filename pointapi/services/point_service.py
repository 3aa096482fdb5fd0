from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple
import logging

from pointapi.core.exceptions import (
    ChargeAmountExceededError,
    InsufficientBalanceError,
    InvalidUserIdError,
    NegativeSpendAmountError,
    NonPositiveChargeAmountError,
    PointError,
    PointLimitExceededError,
    StorageError,
    UserNotFoundError,
)
from pointapi.repositories.base import BalanceStore, HistoryLog
from pointapi.schemas.points import PointHistory, TransactionType, UserPoint
from pointapi.services.lock_registry import UserLockRegistry
from pointapi.utils.timezone_utils import get_kst_now

logger = logging.getLogger(__name__)

MAX_POINT = 1_000_000


class PointService:
    """포인트 충전/사용/조회 비즈니스 로직을 담당하는 서비스

    같은 유저에 대한 모든 작업은 UserLockRegistry의 유저별 락 안에서 직렬화된다.
    잔액 쓰기와 이력 추가는 같은 락 안에서 순서대로 수행되며, 이 락이 두 저장소 사이의
    유일한 일관성 장치다 (DB 트랜잭션으로 묶지 않는다).
    """

    def __init__(
        self,
        balance_store: BalanceStore,
        history_log: HistoryLog,
        lock_registry: UserLockRegistry,
        max_point: int = MAX_POINT,
        lock_queries: bool = True,
        auto_create_user: bool = False,
        lock_timeout: Optional[float] = None,
    ):
        self.balance_store = balance_store
        self.history_log = history_log
        self.lock_registry = lock_registry
        self.max_point = max_point
        self.lock_queries = lock_queries
        self.auto_create_user = auto_create_user
        self.lock_timeout = lock_timeout

    def get_user_balance(self, user_id: int) -> UserPoint:
        """특정 유저의 포인트 조회

        Args:
            user_id: 조회할 유저의 ID

        Returns:
            UserPoint: 현재 잔액

        Raises:
            InvalidUserIdError: user_id가 유효하지 않은 경우
            UserNotFoundError: 유저를 찾지 못한 경우
        """
        self._validate_user_id(user_id)
        with self._query_lock(user_id):
            return self._load_user_point(user_id)

    def get_user_history(self, user_id: int) -> List[PointHistory]:
        """특정 유저의 포인트 충전/이용 내역 조회 (삽입 순서)"""
        self._validate_user_id(user_id)
        with self._query_lock(user_id):
            self._load_user_point(user_id)
            histories = self._call_store(
                "read history", user_id, self.history_log.read_all, user_id
            )
            logger.info(f"Retrieved {len(histories)} histories for user {user_id}")
            return histories

    def charge_points(self, user_id: int, amount: int) -> UserPoint:
        """특정 유저의 포인트 충전

        Args:
            user_id: 충전할 유저의 ID
            amount: 충전할 포인트 금액

        Returns:
            UserPoint: 충전 후 잔액

        Raises:
            InvalidUserIdError: user_id가 유효하지 않은 경우
            UserNotFoundError: 유저를 찾지 못한 경우
            NonPositiveChargeAmountError: amount가 0 이하인 경우
            ChargeAmountExceededError: amount가 1회 충전 한도를 넘는 경우
            PointLimitExceededError: 충전 후 잔액이 최대 한도를 넘는 경우
            StorageError: 저장소 처리에 실패한 경우
        """
        self._validate_user_id(user_id)
        with self._mutation_lock(user_id):
            user_point, stored = self._find_user_point(user_id)

            if not self._is_int(amount) or amount <= 0:
                self._reject(NonPositiveChargeAmountError(details={"amount": amount}), user_id)

            # 1회 충전 범위 확인
            if amount > self.max_point:
                self._reject(
                    ChargeAmountExceededError(
                        details={"amount": amount, "max_point": self.max_point}
                    ),
                    user_id,
                )

            new_balance = user_point.balance + amount
            if new_balance > self.max_point:
                self._reject(
                    PointLimitExceededError(
                        details={
                            "balance": user_point.balance,
                            "amount": amount,
                            "max_point": self.max_point,
                        }
                    ),
                    user_id,
                )

            charged = self._commit(user_point, new_balance, TransactionType.CHARGE, stored)
            logger.info(
                f"Charged {amount} points for user {user_id}: {user_point.balance} -> {charged.balance}"
            )
            return charged

    def spend_points(self, user_id: int, amount: int) -> UserPoint:
        """특정 유저의 포인트 사용

        Args:
            user_id: 사용할 유저의 ID
            amount: 사용할 포인트 금액

        Returns:
            UserPoint: 사용 후 잔액

        Raises:
            InvalidUserIdError: user_id가 유효하지 않은 경우
            UserNotFoundError: 유저를 찾지 못한 경우
            NegativeSpendAmountError: amount가 음수인 경우
            InsufficientBalanceError: 사용 후 잔액이 0 미만인 경우
            StorageError: 저장소 처리에 실패한 경우
        """
        self._validate_user_id(user_id)
        with self._mutation_lock(user_id):
            user_point, stored = self._find_user_point(user_id)

            if not self._is_int(amount) or amount < 0:
                self._reject(NegativeSpendAmountError(details={"amount": amount}), user_id)

            new_balance = user_point.balance - amount
            if new_balance < 0:
                self._reject(
                    InsufficientBalanceError(
                        f"Insufficient balance. Required: {amount}, Available: {user_point.balance}",
                        details={"balance": user_point.balance, "amount": amount},
                    ),
                    user_id,
                )

            spent = self._commit(user_point, new_balance, TransactionType.USE, stored)
            logger.info(
                f"Spent {amount} points for user {user_id}: {user_point.balance} -> {spent.balance}"
            )
            return spent

    @staticmethod
    def _is_int(value) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    def _validate_user_id(self, user_id: int) -> None:
        # 락 객체를 만들기 전에 걸러낸다
        if not self._is_int(user_id) or user_id < 0:
            logger.warning(f"Rejected invalid user id: {user_id!r}")
            raise InvalidUserIdError(details={"user_id": repr(user_id)})

    def _mutation_lock(self, user_id: int):
        return self.lock_registry.acquire(user_id, timeout=self.lock_timeout)

    @contextmanager
    def _query_lock(self, user_id: int) -> Iterator[None]:
        if not self.lock_queries:
            yield
            return
        with self.lock_registry.acquire(user_id, timeout=self.lock_timeout):
            yield

    def _load_user_point(self, user_id: int) -> UserPoint:
        user_point, _ = self._find_user_point(user_id)
        return user_point

    def _find_user_point(self, user_id: int) -> Tuple[UserPoint, bool]:
        """(잔액 레코드, 저장소에 실제로 있었는지) 반환"""
        user_point = self._call_store(
            "read balance", user_id, self.balance_store.read_balance, user_id
        )
        if user_point is not None:
            return user_point, True

        if self.auto_create_user:
            # 저장은 첫 충전/사용 커밋 시점에 이루어진다
            return UserPoint(user_id=user_id, balance=0, updated_at=get_kst_now()), False

        logger.warning(f"User {user_id} not found")
        raise UserNotFoundError(details={"user_id": user_id})

    def _reject(self, error: PointError, user_id: int) -> None:
        logger.warning(f"Rejected point operation for user {user_id}: [{error.error_code}] {error.message}")
        raise error

    def _commit(
        self,
        user_point: UserPoint,
        new_balance: int,
        transaction_type: TransactionType,
        stored: bool = True,
    ) -> UserPoint:
        """잔액 쓰기 + 이력 추가 (유저 락을 잡은 상태에서만 호출)

        이력 추가가 실패하면 이전 잔액으로 되돌린 뒤 StorageError를 올린다.
        stored가 False면 (auto_create_user로 만든 유저) 방금 쓴 레코드를 지운다.
        """
        user_id = user_point.user_id
        updated = self._call_store(
            "write balance", user_id, self.balance_store.write_balance, user_id, new_balance
        )
        try:
            self._call_store(
                "append history",
                user_id,
                self.history_log.append,
                user_id,
                updated.balance,
                transaction_type,
                updated.updated_at,
            )
        except StorageError:
            if not stored:
                logger.error(
                    f"Removing balance record of user {user_id} after history append failure"
                )
                self._call_store(
                    "remove balance", user_id, self.balance_store.delete_balance, user_id
                )
                raise
            logger.error(
                f"Restoring balance of user {user_id} to {user_point.balance} after history append failure"
            )
            self._call_store(
                "restore balance",
                user_id,
                self.balance_store.write_balance,
                user_id,
                user_point.balance,
            )
            raise
        return updated

    def _call_store(self, action: str, user_id: int, func, *args):
        """저장소 호출, PointError가 아닌 예외는 StorageError로 변환"""
        try:
            return func(*args)
        except StorageError as e:
            logger.error(f"Failed to {action} for user {user_id}: {str(e)}")
            raise
        except PointError:
            raise
        except Exception as e:
            logger.error(f"Failed to {action} for user {user_id}: {str(e)}")
            raise StorageError(f"Failed to {action}: {str(e)}") from e

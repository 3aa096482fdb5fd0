import threading
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, call

from pointapi.core.exceptions import (
    ChargeAmountExceededError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidUserIdError,
    NegativeSpendAmountError,
    NonPositiveChargeAmountError,
    PointErrorKind,
    PointLimitExceededError,
    PointLockTimeoutError,
    StorageError,
    UserNotFoundError,
)
from pointapi.repositories.base import BalanceStore, HistoryLog
from pointapi.schemas.points import PointHistory, TransactionType, UserPoint
from pointapi.services.lock_registry import UserLockRegistry
from pointapi.services.point_service import MAX_POINT, PointService

NOW = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


def _user_point(user_id: int, balance: int) -> UserPoint:
    return UserPoint(user_id=user_id, balance=balance, updated_at=NOW)


@pytest.fixture
def balance_store():
    store = Mock(spec=BalanceStore)
    store.write_balance.side_effect = lambda user_id, balance: _user_point(user_id, balance)
    return store


@pytest.fixture
def history_log():
    log = Mock(spec=HistoryLog)
    log.append.side_effect = lambda user_id, amount, transaction_type, timestamp: PointHistory(
        id=1, user_id=user_id, amount=amount, type=transaction_type, timestamp=timestamp
    )
    log.read_all.return_value = []
    return log


@pytest.fixture
def lock_registry():
    return UserLockRegistry()


@pytest.fixture
def point_service(balance_store, history_log, lock_registry):
    return PointService(balance_store, history_log, lock_registry)


class TestGetUserBalance:
    """포인트 조회 테스트"""

    def test_get_user_balance(self, point_service, balance_store):
        """특정 유저의 포인트를 조회할 수 있다"""
        # Arrange
        balance_store.read_balance.return_value = _user_point(1, 10000)

        # Act
        result = point_service.get_user_balance(1)

        # Assert
        assert result.balance == 10000
        balance_store.read_balance.assert_called_once_with(1)

    @pytest.mark.parametrize("user_id", [-1, True, "1", 1.5, None])
    def test_invalid_user_id(self, point_service, balance_store, lock_registry, user_id):
        """잘못된 ID 값이면 락을 만들거나 저장소를 조회하기 전에 실패한다"""
        with pytest.raises(InvalidUserIdError) as exc_info:
            point_service.get_user_balance(user_id)

        assert exc_info.value.kind == PointErrorKind.INVALID_IDENTITY
        balance_store.read_balance.assert_not_called()
        assert len(lock_registry) == 0

    def test_zero_user_id_is_valid(self, point_service, balance_store):
        """0은 유효한 유저 ID다"""
        balance_store.read_balance.return_value = _user_point(0, 0)

        assert point_service.get_user_balance(0).user_id == 0

    def test_user_not_found(self, point_service, balance_store):
        """잔액 레코드가 없으면 UserNotFound"""
        balance_store.read_balance.return_value = None

        with pytest.raises(UserNotFoundError) as exc_info:
            point_service.get_user_balance(1)

        assert exc_info.value.kind == PointErrorKind.NOT_FOUND

    def test_auto_create_user_returns_zero_balance(self, balance_store, history_log, lock_registry):
        """auto_create_user면 없는 유저를 0포인트로 취급하고 아무것도 쓰지 않는다"""
        service = PointService(balance_store, history_log, lock_registry, auto_create_user=True)
        balance_store.read_balance.return_value = None

        result = service.get_user_balance(5)

        assert result.user_id == 5
        assert result.balance == 0
        balance_store.write_balance.assert_not_called()

    def test_query_takes_user_lock(self, point_service, balance_store, lock_registry):
        """조회도 유저별 락을 사용한다"""
        balance_store.read_balance.return_value = _user_point(1, 0)

        point_service.get_user_balance(1)

        assert 1 in lock_registry
        assert not lock_registry.get_lock(1).locked()

    def test_query_without_lock(self, balance_store, history_log, lock_registry):
        """lock_queries=False면 조회 시 락을 만들지 않는다"""
        service = PointService(balance_store, history_log, lock_registry, lock_queries=False)
        balance_store.read_balance.return_value = _user_point(1, 0)

        service.get_user_balance(1)

        assert 1 not in lock_registry

    def test_repeated_queries_return_same_result(self, point_service, balance_store):
        """변경이 없으면 반복 조회 결과가 같다"""
        balance_store.read_balance.return_value = _user_point(1, 300)

        assert point_service.get_user_balance(1) == point_service.get_user_balance(1)


class TestGetUserHistory:
    """포인트 이력 조회 테스트"""

    def test_get_user_history(self, point_service, balance_store, history_log):
        """존재하는 유저의 이력을 삽입 순서대로 반환한다"""
        # Arrange
        balance_store.read_balance.return_value = _user_point(1, 300)
        histories = [
            PointHistory(id=1, user_id=1, amount=500, type=TransactionType.CHARGE, timestamp=NOW),
            PointHistory(id=3, user_id=1, amount=300, type=TransactionType.USE, timestamp=NOW),
        ]
        history_log.read_all.return_value = histories

        # Act
        result = point_service.get_user_history(1)

        # Assert
        assert result == histories
        history_log.read_all.assert_called_once_with(1)

    def test_history_of_unknown_user(self, point_service, balance_store, history_log):
        """유저가 없으면 이력을 읽지 않고 실패한다"""
        balance_store.read_balance.return_value = None

        with pytest.raises(UserNotFoundError):
            point_service.get_user_history(1)

        history_log.read_all.assert_not_called()

    def test_history_invalid_user_id(self, point_service, history_log):
        with pytest.raises(InvalidUserIdError):
            point_service.get_user_history(-1)


class TestChargePoints:
    """포인트 충전 테스트"""

    def test_charge_points(self, point_service, balance_store, history_log):
        """충전 후 잔액을 저장하고 거래 후 잔액으로 CHARGE 이력을 남긴다"""
        # Arrange
        balance_store.read_balance.return_value = _user_point(1, 5000)

        # Act
        result = point_service.charge_points(1, 10000)

        # Assert
        assert result.balance == 15000
        balance_store.write_balance.assert_called_once_with(1, 15000)
        history_log.append.assert_called_once_with(1, 15000, TransactionType.CHARGE, NOW)

    def test_charge_up_to_max_point(self, point_service, balance_store):
        """합계가 정확히 최대 한도면 성공한다"""
        balance_store.read_balance.return_value = _user_point(1, MAX_POINT - 100)

        assert point_service.charge_points(1, 100).balance == MAX_POINT

    @pytest.mark.parametrize("amount", [0, -5, True, 1.5, "100"])
    def test_non_positive_charge(self, point_service, balance_store, history_log, amount):
        """0 이하(또는 정수가 아닌) 금액은 충전할 수 없다"""
        balance_store.read_balance.return_value = _user_point(1, 0)

        with pytest.raises(NonPositiveChargeAmountError) as exc_info:
            point_service.charge_points(1, amount)

        assert exc_info.value.kind == PointErrorKind.INVALID_AMOUNT
        balance_store.write_balance.assert_not_called()
        history_log.append.assert_not_called()

    def test_charge_amount_over_single_limit(self, point_service, balance_store, history_log):
        """1회 충전 금액이 한도를 넘으면 INVALID_AMOUNT (잔액 한도 초과와 구분)"""
        balance_store.read_balance.return_value = _user_point(1, 0)

        with pytest.raises(ChargeAmountExceededError) as exc_info:
            point_service.charge_points(1, 2_000_000)

        assert isinstance(exc_info.value, InvalidAmountError)
        assert not isinstance(exc_info.value, PointLimitExceededError)
        assert exc_info.value.kind == PointErrorKind.INVALID_AMOUNT
        balance_store.write_balance.assert_not_called()

    def test_charge_exceeds_max_balance(self, point_service, balance_store, history_log):
        """충전 후 잔액이 한도를 넘으면 LIMIT_EXCEEDED, 상태는 변하지 않는다"""
        balance_store.read_balance.return_value = _user_point(1, 900_000)

        with pytest.raises(PointLimitExceededError) as exc_info:
            point_service.charge_points(1, 200_000)

        assert exc_info.value.kind == PointErrorKind.LIMIT_EXCEEDED
        assert exc_info.value.details["balance"] == 900_000
        balance_store.write_balance.assert_not_called()
        history_log.append.assert_not_called()

    def test_charge_unknown_user(self, point_service, balance_store):
        balance_store.read_balance.return_value = None

        with pytest.raises(UserNotFoundError):
            point_service.charge_points(1, 100)

        balance_store.write_balance.assert_not_called()

    def test_charge_auto_creates_user(self, balance_store, history_log, lock_registry):
        """auto_create_user면 첫 충전이 잔액 레코드를 만든다"""
        service = PointService(balance_store, history_log, lock_registry, auto_create_user=True)
        balance_store.read_balance.return_value = None

        result = service.charge_points(3, 700)

        assert result.balance == 700
        balance_store.write_balance.assert_called_once_with(3, 700)

    def test_custom_max_point(self, balance_store, history_log, lock_registry):
        service = PointService(balance_store, history_log, lock_registry, max_point=1000)
        balance_store.read_balance.return_value = _user_point(1, 900)

        with pytest.raises(PointLimitExceededError):
            service.charge_points(1, 101)


class TestSpendPoints:
    """포인트 사용 테스트"""

    def test_spend_points(self, point_service, balance_store, history_log):
        """사용 후 잔액을 저장하고 USE 이력을 남긴다"""
        # Arrange
        balance_store.read_balance.return_value = _user_point(1, 10000)

        # Act
        result = point_service.spend_points(1, 3000)

        # Assert
        assert result.balance == 7000
        balance_store.write_balance.assert_called_once_with(1, 7000)
        history_log.append.assert_called_once_with(1, 7000, TransactionType.USE, NOW)

    def test_spend_whole_balance(self, point_service, balance_store):
        balance_store.read_balance.return_value = _user_point(1, 10000)

        assert point_service.spend_points(1, 10000).balance == 0

    def test_spend_zero(self, point_service, balance_store, history_log):
        """0 포인트 사용은 허용되며 이력도 남는다"""
        balance_store.read_balance.return_value = _user_point(1, 10000)

        assert point_service.spend_points(1, 0).balance == 10000
        history_log.append.assert_called_once()

    @pytest.mark.parametrize("amount", [-1, -500, False, 2.5])
    def test_negative_spend(self, point_service, balance_store, history_log, amount):
        """음수(또는 정수가 아닌) 금액은 사용할 수 없다"""
        balance_store.read_balance.return_value = _user_point(1, 10000)

        with pytest.raises(NegativeSpendAmountError) as exc_info:
            point_service.spend_points(1, amount)

        assert exc_info.value.kind == PointErrorKind.INVALID_AMOUNT
        balance_store.write_balance.assert_not_called()
        history_log.append.assert_not_called()

    def test_insufficient_balance(self, point_service, balance_store, history_log):
        """가진 포인트보다 많이 사용할 수 없고 상태는 변하지 않는다"""
        balance_store.read_balance.return_value = _user_point(1, 10000)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            point_service.spend_points(1, 20000)

        assert exc_info.value.kind == PointErrorKind.INSUFFICIENT_BALANCE
        balance_store.write_balance.assert_not_called()
        history_log.append.assert_not_called()

    def test_spend_unknown_user(self, point_service, balance_store):
        balance_store.read_balance.return_value = None

        with pytest.raises(UserNotFoundError):
            point_service.spend_points(1, 0)


class TestStorageFailure:
    """저장소 오류 처리 테스트"""

    def test_read_failure_becomes_storage_error(self, point_service, balance_store):
        """저장소 예외는 StorageError로 구분되어 전달된다"""
        cause = RuntimeError("disk unavailable")
        balance_store.read_balance.side_effect = cause

        with pytest.raises(StorageError) as exc_info:
            point_service.charge_points(1, 100)

        assert exc_info.value.kind == PointErrorKind.STORAGE_FAILURE
        assert exc_info.value.__cause__ is cause

    def test_storage_error_passes_through(self, point_service, balance_store):
        """이미 StorageError면 그대로 전달된다"""
        error = StorageError("connection lost")
        balance_store.read_balance.side_effect = error

        with pytest.raises(StorageError) as exc_info:
            point_service.get_user_balance(1)

        assert exc_info.value is error

    def test_write_failure_skips_history(self, point_service, balance_store, history_log):
        balance_store.read_balance.return_value = _user_point(1, 100)
        balance_store.write_balance.side_effect = RuntimeError("write failed")

        with pytest.raises(StorageError):
            point_service.charge_points(1, 100)

        history_log.append.assert_not_called()

    def test_history_failure_restores_balance(self, point_service, balance_store, history_log):
        """이력 추가 실패 시 이전 잔액으로 되돌린다"""
        # Arrange
        balance_store.read_balance.return_value = _user_point(1, 10000)
        history_log.append.side_effect = RuntimeError("append failed")

        # Act
        with pytest.raises(StorageError):
            point_service.spend_points(1, 4000)

        # Assert
        assert balance_store.write_balance.call_args_list == [call(1, 6000), call(1, 10000)]
        balance_store.delete_balance.assert_not_called()

    def test_history_failure_removes_new_user_record(self, balance_store, history_log, lock_registry):
        """auto_create_user로 처음 만든 유저는 이력 추가 실패 시 레코드를 남기지 않는다"""
        # Arrange
        service = PointService(balance_store, history_log, lock_registry, auto_create_user=True)
        balance_store.read_balance.return_value = None
        history_log.append.side_effect = RuntimeError("append failed")

        # Act
        with pytest.raises(StorageError):
            service.charge_points(5, 100)

        # Assert
        assert balance_store.write_balance.call_args_list == [call(5, 100)]
        balance_store.delete_balance.assert_called_once_with(5)

    def test_lock_released_after_failure(self, point_service, balance_store, lock_registry):
        """실패로 끝나도 유저 락은 해제된다"""
        balance_store.read_balance.return_value = _user_point(1, 0)

        with pytest.raises(InsufficientBalanceError):
            point_service.spend_points(1, 1)

        assert not lock_registry.get_lock(1).locked()


class TestLockTimeout:
    """락 대기 시간 초과 테스트"""

    def test_lock_timeout(self, balance_store, history_log, lock_registry):
        """다른 작업이 락을 잡고 있으면 timeout 후 실패하고 저장소는 건드리지 않는다"""
        service = PointService(balance_store, history_log, lock_registry, lock_timeout=0.05)
        holder = lock_registry.get_lock(1)
        holder.acquire()
        try:
            with pytest.raises(PointLockTimeoutError) as exc_info:
                service.charge_points(1, 100)
        finally:
            holder.release()

        assert exc_info.value.kind == PointErrorKind.LOCK_TIMEOUT
        balance_store.read_balance.assert_not_called()
        assert not holder.locked()
        assert holder.waiting() == 0

    def test_other_user_not_blocked(self, balance_store, history_log, lock_registry):
        """다른 유저의 락은 대기에 영향을 주지 않는다"""
        service = PointService(balance_store, history_log, lock_registry, lock_timeout=0.5)
        balance_store.read_balance.return_value = _user_point(2, 0)
        done = threading.Event()

        with lock_registry.acquire(1):
            worker = threading.Thread(target=lambda: (service.charge_points(2, 10), done.set()))
            worker.start()
            worker.join(timeout=2)

        assert done.is_set()

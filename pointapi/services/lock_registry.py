"""
유저별 락 레지스트리

유저 ID마다 하나의 FairLock을 지연 생성하여 보관합니다.

- 같은 유저에 대한 작업은 도착 순서(FIFO)대로 하나씩 임계 구역에 들어갑니다.
- 서로 다른 유저의 락은 완전히 독립적이라 병렬로 진행됩니다.
- 한번 생성된 락은 프로세스가 끝날 때까지 제거하지 않습니다. 메모리 사용량은
  지금까지 본 유저 수에 비례해서 증가하므로 유저 규모가 큰 환경에서는 용량 산정에 포함해야 합니다.
- 단일 프로세스 범위의 락입니다. 여러 프로세스/인스턴스 사이의 배타성은 보장하지 않습니다.
"""

import logging
import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Dict, Iterator, Optional

from pointapi.core.exceptions import PointLockTimeoutError

logger = logging.getLogger(__name__)


class FairLock:
    """도착 순서대로 소유권을 넘겨주는 상호 배제 락

    release 시 대기 중인 스레드가 있으면 락을 풀지 않고 가장 오래 기다린 스레드에게
    소유권을 직접 넘긴다. 새로 도착한 스레드가 대기열을 새치기할 수 없다.
    재진입은 지원하지 않는다.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locked = False
        self._waiters: Deque[threading.Event] = deque()

    def acquire(self, timeout: Optional[float] = None) -> bool:
        with self._guard:
            if not self._locked and not self._waiters:
                self._locked = True
                return True
            waiter = threading.Event()
            self._waiters.append(waiter)

        if waiter.wait(timeout):
            return True

        with self._guard:
            # 타임아웃과 소유권 이양이 겹친 경우 이미 락을 가진 상태
            if waiter.is_set():
                return True
            self._waiters.remove(waiter)
            return False

    def release(self) -> None:
        with self._guard:
            if not self._locked:
                raise RuntimeError("release unlocked lock")
            if self._waiters:
                self._waiters.popleft().set()
            else:
                self._locked = False

    def locked(self) -> bool:
        with self._guard:
            return self._locked

    def waiting(self) -> int:
        """현재 대기 중인 스레드 수"""
        with self._guard:
            return len(self._waiters)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()


class UserLockRegistry:
    """유저 ID -> FairLock 레지스트리 (프로세스당 하나)"""

    def __init__(self):
        self._locks: Dict[int, FairLock] = {}
        self._registry_lock = threading.Lock()

    def get_lock(self, user_id: int) -> FairLock:
        """유저의 락 반환, 없으면 생성

        동시에 처음 접근하더라도 유저당 락은 정확히 하나만 만들어진다.
        """
        lock = self._locks.get(user_id)
        if lock is not None:
            return lock

        with self._registry_lock:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = FairLock()
                self._locks[user_id] = lock
                logger.debug(f"Created lock for user {user_id} (total {len(self._locks)})")
            return lock

    @contextmanager
    def acquire(self, user_id: int, timeout: Optional[float] = None) -> Iterator[None]:
        """
        유저 락을 잡은 상태로 블록을 실행하고, 어떤 경로로 빠져나가든 락을 해제

        Args:
            user_id: 유저 ID
            timeout: 최대 대기 시간(초), None이면 무기한 대기

        Raises:
            PointLockTimeoutError: timeout 안에 락을 얻지 못한 경우 (락은 잡히지 않음)
        """
        lock = self.get_lock(user_id)
        if not lock.acquire(timeout):
            logger.warning(f"Timed out waiting {timeout}s for lock of user {user_id}")
            raise PointLockTimeoutError(
                details={"user_id": user_id, "timeout_seconds": timeout}
            )
        try:
            yield
        finally:
            lock.release()

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)

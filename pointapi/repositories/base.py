from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import TypeVar, Generic, Optional, List, Any, Type, Iterator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from pydantic import BaseModel

from pointapi.core.exceptions import StorageError
from pointapi.schemas.points import PointHistory, TransactionType, UserPoint

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BalanceStore(ABC):
    """유저 ID -> 현재 잔액 레코드 저장소

    단건 조회/단건 upsert만 제공하며 자체적인 동시성 보장은 없다.
    """

    @abstractmethod
    def read_balance(self, user_id: int) -> Optional[UserPoint]:
        """잔액 레코드 조회 (없으면 None)"""

    @abstractmethod
    def write_balance(self, user_id: int, balance: int) -> UserPoint:
        """잔액 저장 후 커밋된 레코드(updated_at 포함) 반환"""

    @abstractmethod
    def delete_balance(self, user_id: int) -> None:
        """잔액 레코드 삭제 (없으면 아무것도 하지 않음)"""


class HistoryLog(ABC):
    """유저 ID -> 거래 이력 시퀀스 (추가 전용)"""

    @abstractmethod
    def append(
        self,
        user_id: int,
        amount: int,
        transaction_type: TransactionType,
        timestamp: datetime,
    ) -> PointHistory:
        """이력 추가 후 id가 부여된 레코드 반환"""

    @abstractmethod
    def read_all(self, user_id: int) -> List[PointHistory]:
        """삽입 순서대로 전체 이력 반환 (없으면 빈 리스트)"""


class BaseRepository(Generic[T, SchemaType], ABC):
    """SQLAlchemy 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    호출마다 짧은 세션을 열고 닫으므로 여러 스레드에서 같은 인스턴스를 공유해도 된다.
    """

    def __init__(
        self,
        model_class: Type[T],
        schema_class: Type[SchemaType],
        session_factory: sessionmaker,
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.session_factory = session_factory

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """성공 시 커밋, 실패 시 롤백하는 세션 스코프

        SQLAlchemy 오류는 StorageError로 변환된다.
        """
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageError(
                f"Database operation failed on {self.model_class.__name__}: {str(e)}"
            ) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

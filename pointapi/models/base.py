from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import declarative_base, declared_attr
from sqlalchemy.types import TypeDecorator

from pointapi.utils.timezone_utils import KST

Base = declarative_base()


class KSTDateTime(TypeDecorator):
    """타임존이 있는 datetime 컬럼

    저장할 때 KST로 맞추고, SQLite처럼 타임존을 저장하지 못하는 DB에서 읽은 naive 값에는
    KST를 붙여서 돌려준다.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(KST)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=KST)
        return value


class CreatedAtMixin:
    """행 생성 시각 (DB 기본값)"""

    @declared_attr
    def created_at(cls):
        return Column(DateTime(timezone=True), server_default=func.now())


class BaseModel(Base, CreatedAtMixin):
    """포인트 테이블 공통 베이스

    updated_at 같은 도메인 시각은 서비스가 직접 기록하므로 여기에는 created_at만 둔다.
    """

    __abstract__ = True

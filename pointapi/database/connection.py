import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pointapi.config import Settings
from pointapi.models.base import Base
import pointapi.models.points  # noqa: F401  테이블 메타데이터 등록

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    """설정에 맞는 엔진 생성, DB_AUTO_CREATE_TABLES면 테이블도 생성"""
    url = settings.database_url

    if url.startswith("sqlite"):
        # 리포지토리 호출이 여러 스레드에서 들어오므로 같은 스레드 검사를 끈다
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.DEBUG,
        )
    else:
        engine = create_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,  # 연결 유효성 검사
            pool_recycle=3600,  # 1시간마다 연결 재생성
            echo=settings.DEBUG,  # 디버그 모드에서 SQL 로깅
        )

    if settings.DB_AUTO_CREATE_TABLES:
        init_db(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    # Use expire_on_commit=False so schemas can be built from instances after commit.
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )


def init_db(engine: Engine) -> None:
    """테이블 생성 (이미 있으면 건너뜀)"""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Point tables ready on {engine.url.render_as_string(hide_password=True)}")

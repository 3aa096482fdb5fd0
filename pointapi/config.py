from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Literal, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="pointapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Point Ledger API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Storage ("memory" | "database")
    STORAGE_BACKEND: Literal["memory", "database"] = "database"
    MEMORY_STORE_LATENCY_MS: int = 0  # 인메모리 테이블 응답 지연 (테스트/부하 재현용)
    MEMORY_SEED_USERS: Dict[int, int] = {}  # 인메모리 저장소 초기 잔액, 예: MEMORY_SEED_USERS='{"1": 0}'

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""

    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_AUTO_CREATE_TABLES: bool = True

    @property
    def database_url(self) -> str:
        """DATABASE_URL 우선, 없으면 POSTGRES_* 조합, 그것도 없으면 로컬 SQLite"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if self.POSTGRES_HOST:
            # URL encode the password to handle special characters
            encoded_password = quote_plus(self.POSTGRES_PASSWORD)
            return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

        return "sqlite:///./points.db"

    # Point Management
    MAX_POINT: int = 1_000_000  # 최대 보유 포인트 및 1회 충전 한도
    POINT_AUTO_CREATE_USER: bool = False  # True면 잔액 레코드가 없는 유저를 0포인트로 취급
    POINT_QUERY_USE_LOCK: bool = True  # 조회도 유저별 락 안에서 수행
    POINT_LOCK_TIMEOUT_SECONDS: Optional[float] = None  # None이면 무기한 대기


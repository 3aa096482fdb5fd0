import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine

from pointapi.config import Settings
from pointapi.database.connection import init_db as create_tables


def init_db():
    """데이터베이스 초기화 (user_points / point_histories 테이블 생성)"""
    settings = Settings()
    try:
        engine = create_engine(settings.database_url)
        create_tables(engine)
        print(f"Database initialized successfully: {engine.url.render_as_string(hide_password=True)}")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()

"""
유저 포인트 시드 스크립트

POINT_AUTO_CREATE_USER가 꺼져 있으면 잔액 레코드가 없는 유저는 충전/사용/조회가 모두
UserNotFound로 실패하므로, 운영 DB에 유저 잔액 레코드를 미리 만들어 둘 때 사용한다.

사용 예시:
    python scripts/seed_data.py --user 1:0 --user 2:10000
"""

import argparse
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from typing import List, Tuple

from pointapi.config import Settings
from pointapi.database.connection import create_db_engine, create_session_factory
from pointapi.repositories.points_repository import UserPointRepository


def parse_user(value: str) -> Tuple[int, int]:
    """'user_id:balance' 형식 파싱 (balance 생략 시 0)"""
    user_id, _, balance = value.partition(":")
    try:
        return int(user_id), int(balance or 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid --user value: {value!r}")


def seed_user_points(users: List[Tuple[int, int]], settings: Settings) -> None:
    """유저 잔액 레코드 생성 (이미 있으면 잔액을 덮어씀, 이력은 남기지 않음)"""
    max_point = settings.MAX_POINT
    engine = create_db_engine(settings)
    repo = UserPointRepository(create_session_factory(engine))

    for user_id, balance in users:
        if user_id < 0 or not 0 <= balance <= max_point:
            print(f"Skip user {user_id}: balance must be within 0..{max_point}")
            continue
        user_point = repo.write_balance(user_id, balance)
        print(f"Seeded user {user_point.user_id} with {user_point.balance} points")


def main():
    parser = argparse.ArgumentParser(description="Seed user point balances")
    parser.add_argument(
        "--user",
        dest="users",
        action="append",
        type=parse_user,
        required=True,
        help="user_id[:balance], repeatable",
    )
    args = parser.parse_args()
    seed_user_points(args.users, Settings())


if __name__ == "__main__":
    main()

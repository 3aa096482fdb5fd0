"""
포인트 API 라우터

- GET   /point/{user_id}: 포인트 잔액 조회
- GET   /point/{user_id}/histories: 포인트 충전/사용 내역 조회
- PATCH /point/{user_id}/charge: 포인트 충전
- PATCH /point/{user_id}/use: 포인트 사용

서비스가 유저별 락을 블로킹으로 기다리므로 핸들러는 async가 아닌 일반 함수로 두어
FastAPI 스레드풀에서 실행되게 한다. 서비스가 던지는 PointError는
core.exception_handlers에서 에러 종류별 응답으로 변환된다.
"""

from fastapi import APIRouter, Depends, Path
from typing import List
from dependency_injector.wiring import inject, Provide

from pointapi.containers import Container
from pointapi.services.point_service import PointService
from pointapi.schemas.points import PointAmountRequest, PointHistory, UserPoint

router = APIRouter(prefix="/point", tags=["point"])


@router.get("/{user_id}", response_model=UserPoint)
@inject
def get_user_point(
    user_id: int = Path(..., description="유저 ID"),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> UserPoint:
    """
    특정 유저의 포인트 조회

    HTTP Status:
        200: 성공
        400: 유효하지 않은 유저 ID
        404: 유저 없음
    """
    return point_service.get_user_balance(user_id)


@router.get("/{user_id}/histories", response_model=List[PointHistory])
@inject
def get_user_point_histories(
    user_id: int = Path(..., description="유저 ID"),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> List[PointHistory]:
    """특정 유저의 포인트 충전/이용 내역 조회 (오래된 순)"""
    return point_service.get_user_history(user_id)


@router.patch("/{user_id}/charge", response_model=UserPoint)
@inject
def charge_user_point(
    request: PointAmountRequest,
    user_id: int = Path(..., description="유저 ID"),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> UserPoint:
    """
    특정 유저의 포인트 충전

    HTTP Status:
        200: 충전 후 잔액
        400: 금액 오류 / 최대 잔액 초과
        404: 유저 없음
        503: 저장소 오류 또는 락 대기 시간 초과
    """
    return point_service.charge_points(user_id, request.amount)


@router.patch("/{user_id}/use", response_model=UserPoint)
@inject
def use_user_point(
    request: PointAmountRequest,
    user_id: int = Path(..., description="유저 ID"),
    point_service: PointService = Depends(Provide[Container.services.point_service]),
) -> UserPoint:
    """
    특정 유저의 포인트 사용

    HTTP Status:
        200: 사용 후 잔액
        400: 금액 오류 / 잔액 부족
        404: 유저 없음
    """
    return point_service.spend_points(user_id, request.amount)

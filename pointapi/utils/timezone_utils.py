"""
타임존 유틸리티

한국 시간(KST) 기준 시간 처리를 위한 유틸리티 함수들
"""

from datetime import datetime, timezone, timedelta

# 한국 표준시 (KST = UTC+9)
KST = timezone(timedelta(hours=9))


def get_kst_now() -> datetime:
    """현재 KST 시간을 반환합니다."""
    return datetime.now(KST)

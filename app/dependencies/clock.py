from datetime import datetime

from app.utils.clock import utcnow


def get_now() -> datetime:
    """
    요청 처리 기준 시각 (UTC)
    - 모든 기간/상태 판단은 이 값을 인자로 받아 사용
    - 테스트에서는 dependency_overrides로 고정
    """
    return utcnow()

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    UTC aware datetime으로 정규화
    - naive: UTC로 간주 (SQLite는 tzinfo 없이 돌려줌)
    - aware: UTC로 변환
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

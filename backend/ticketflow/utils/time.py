"""Time Utilities - UTC timestamps and formatting"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes
    
    MongoDB hands back naive datetimes unless the client is tz-aware,
    so every comparison goes through here first.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed between two datetimes"""
    delta = ensure_utc(end) - ensure_utc(start)
    return int(delta.total_seconds() / 60)


def is_overdue(due_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check if due datetime has passed
    
    Args:
        due_at: Due datetime or None
        now: Reference time, defaults to current UTC time
    
    Returns:
        True if overdue, False otherwise
    """
    if due_at is None:
        return False
    return ensure_utc(now or utc_now()) > ensure_utc(due_at)


def format_duration(minutes: int) -> str:
    """
    Format duration in minutes to human readable string
    
    Args:
        minutes: Duration in minutes
    
    Returns:
        Human readable string (e.g., "2h 30m", "1d 4h")
    """
    if minutes < 0:
        return f"-{format_duration(-minutes)}"
    
    if minutes < 60:
        return f"{minutes}m"
    
    hours = minutes // 60
    remaining_minutes = minutes % 60
    
    if hours < 24:
        if remaining_minutes > 0:
            return f"{hours}h {remaining_minutes}m"
        return f"{hours}h"
    
    days = hours // 24
    remaining_hours = hours % 24
    
    if remaining_hours > 0:
        return f"{days}d {remaining_hours}h"
    return f"{days}d"

# -*- coding: utf-8 -*-
"""
时间工具
所有入库的时间均为活动所在时区（EVENT_TIMEZONE）的本地时间（naive，无 tzinfo），
"当前时间"、"今天"以及签到所属的自然日也都以该时区计算。
"""
# 标准库
import os
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

# 第三方库
import pytz
from loguru import logger

DEFAULT_EVENT_TIMEZONE = "Asia/Kolkata"


def event_timezone():
    """读取活动时区配置，非法配置回退到默认时区"""
    name = os.getenv("EVENT_TIMEZONE", DEFAULT_EVENT_TIMEZONE)
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"未知的 EVENT_TIMEZONE={name}，回退到 {DEFAULT_EVENT_TIMEZONE}")
        return pytz.timezone(DEFAULT_EVENT_TIMEZONE)


def local_now() -> datetime:
    return datetime.now(event_timezone()).replace(tzinfo=None, microsecond=0)


def local_today() -> date:
    return local_now().date()


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """带时区的时间转换为活动时区的本地时间；无时区的时间视为已是本地时间"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(event_timezone()).replace(tzinfo=None)


def parse_iso_datetime(text: str) -> datetime:
    """解析 ISO-8601 时间字符串

    Raises:
        ValueError: 字符串为空或格式不合法
    """
    raw = (text or "").strip()
    if not raw:
        raise ValueError("时间不能为空")
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return to_local_naive(datetime.fromisoformat(raw))


def parse_date(text: Optional[str]) -> Optional[date]:
    """解析 YYYY-MM-DD，空值返回 None，非法格式抛出 ValueError"""
    if text is None or not text.strip():
        return None
    return datetime.strptime(text.strip(), "%Y-%m-%d").date()


def parse_date_or_today(text: Optional[str], field: str = "date") -> date:
    """解析日期参数，缺省或非法时回退到今天"""
    try:
        parsed = parse_date(text)
    except ValueError:
        logger.warning(f"参数 {field}={text} 不是合法的 YYYY-MM-DD，使用今天")
        parsed = None
    return parsed or local_today()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """返回某一天的 [开始, 次日开始) 区间"""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def isoformat_or_empty(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""

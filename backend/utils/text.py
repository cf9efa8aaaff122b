"""
文本处理工具
表单参数清洗
"""

from typing import Any, Optional
from markupsafe import Markup

TRUE_VALUES = ("1", "on", "true", "yes")


def strip_tags(text: Optional[str]) -> str:
    """去除HTML标签并合并空白"""
    if not text:
        return ""
    return Markup(str(text)).striptags()


def clean_text(value: Any) -> str:
    """清洗普通文本参数：转字符串、去标签、去首尾空白"""
    if value is None:
        return ""
    return strip_tags(str(value)).strip()


def parse_int(value: Any) -> Optional[int]:
    """
    解析整数参数
    无法解析时返回 None（"12.0" 视为 12）
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if value is None:
        return None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None


def clean_int(value: Any, default: int = 0) -> int:
    """清洗整数参数，无法解析时返回默认值"""
    parsed = parse_int(value)
    return default if parsed is None else parsed


def to_bool(value: Any) -> bool:
    """把表单里的勾选值转换为布尔"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES

"""
工具函数目录
按功能分类组织
"""

from .text import strip_tags, clean_text, parse_int, clean_int, to_bool
from .request import get_client_ip, get_accept_language
from .timezone import get_utc_now

__all__ = [
    # 文本处理
    "strip_tags",
    "clean_text",
    "parse_int",
    "clean_int",
    "to_bool",
    # 请求处理
    "get_client_ip",
    "get_accept_language",
    # 时间
    "get_utc_now",
]

"""
数据验证模式目录
"""

from .response import ApiResponse, success

__all__ = [
    # 响应
    "ApiResponse", "success"
]

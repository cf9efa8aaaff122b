"""
HTTP请求工具
"""

from typing import Optional
from fastapi import Request


def get_client_ip(request: Request) -> str:
    """
    获取客户端真实IP
    支持代理服务器（Nginx等）转发的请求
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # 取第一个IP（最原始的客户端IP）
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def get_accept_language(request: Request) -> Optional[str]:
    """
    从 Accept-Language 头解析首选语言
    例: "fr-FR,fr;q=0.9,en;q=0.8" -> "fr_FR"
    """
    header = request.headers.get("Accept-Language")
    if not header:
        return None
    first = header.split(",")[0].split(";")[0].strip()
    if not first:
        return None
    parts = first.replace("-", "_").split("_")
    if len(parts) == 1:
        # 只有语言没有地区时，用常见地区补全
        return {"en": "en_US", "fr": "fr_FR", "zh": "zh_CN"}.get(parts[0].lower())
    return f"{parts[0].lower()}_{parts[1].upper()}"

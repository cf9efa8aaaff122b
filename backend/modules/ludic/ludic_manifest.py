"""
Ludic 课程格式模块清单
定义模块元信息、路由入口、权限声明等
"""

import logging

from core.events import event_bus, Events, Event
from core.loader import ModuleManifest

logger = logging.getLogger(__name__)

# 需要记录到日志的课程格式事件
_LOGGED_EVENTS = (
    Events.LUDIC_SECTION_MOVED,
    Events.LUDIC_COURSE_MODULE_MOVED,
    Events.LUDIC_CONFIG_UPDATED,
)


def _log_event(event: Event):
    logger.info(f"课程格式事件 {event.name}: {event.data}")


async def on_enable():
    """订阅课程格式事件"""
    for name in _LOGGED_EVENTS:
        event_bus.unsubscribe(name, _log_event)
        event_bus.subscribe(name, _log_event)


manifest = ModuleManifest(
    id="ludic",
    name="Ludic 课程格式",
    version="1.0.0",
    description="游戏化课程格式：皮肤、拖拽排序与属性表单",
    icon="🎲",
    author="Ludic",

    router_prefix="/api/v1/ludic",

    permissions=[
        "ludic.view",
        "ludic.edit",
    ],

    enabled=True,
    on_enable=on_enable,
)

# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - AJAX 控制器

前端脚本通过 controller/action 调用这里的方法：
- 返回字符串时作为 HTML 片段输出
- 返回字典时作为 JSON 输出（表单校验结果、弹窗）
"""

import logging
import re
from typing import Any, Dict, Optional, Type, Union

from core.errors import BusinessException, NotFoundException, PermissionException, ErrorCode

from .ludic_context import ContextHelper
from .ludic_forms import FORMS
from .ludic_items import Section, CourseModule
from .ludic_renderers import LudicRenderer
from .ludic_schemas import AjaxRequest
from .ludic_services import SectionService, CourseModuleService

logger = logging.getLogger(__name__)

ControllerResult = Union[str, Dict[str, Any]]

# jQuery 以 GET 发送数组时的键名：data[0][name] / data[0][value]
_FORMDATA_KEY = re.compile(r"^data\[(\d+)\]\[(name|value)\]$")


def parse_query_formdata(query_params) -> list:
    """把 jQuery 编码的查询参数还原为 [{name, value}] 列表"""
    fields: Dict[int, Dict[str, Any]] = {}
    for key, value in query_params.items():
        match = _FORMDATA_KEY.match(key)
        if match:
            fields.setdefault(int(match.group(1)), {})[match.group(2)] = value
    return [fields[i] for i in sorted(fields) if "name" in fields[i]]


class Controller:
    """控制器基类"""

    name: str = ""
    actions: tuple = ()
    # 需要编辑权限的动作
    edit_actions: tuple = ()

    def __init__(self, context: ContextHelper, params: AjaxRequest):
        self.context = context
        self.params = params
        self.renderer = LudicRenderer(context)

    async def execute(self, action: str) -> ControllerResult:
        if action not in self.actions:
            raise BusinessException(ErrorCode.LUDIC_ACTION_NOT_FOUND, f"控制器 {self.name} 没有动作 {action}")
        if action in self.edit_actions:
            if not self.context.user_can_edit():
                raise PermissionException("没有编辑课程格式的权限")
            self.context.enable_editing()
        logger.debug(f"执行 {self.name}.{action} (course={self.context.get_course_id()})")
        return await getattr(self, action)()

    def require_param(self, name: str) -> int:
        value = getattr(self.params, name)
        if value is None:
            raise BusinessException(ErrorCode.VALIDATION_ERROR, f"缺少参数: {name}")
        return value

    def get_section(self, section_id: Optional[int]) -> Section:
        section = self.context.get_section_by_id(section_id)
        if section is None:
            raise NotFoundException("章节", section_id, code=ErrorCode.LUDIC_SECTION_NOT_FOUND)
        return section

    def get_course_module(self, cm_id: Optional[int]) -> CourseModule:
        cm = self.context.get_course_module_by_id(cm_id)
        if cm is None:
            raise NotFoundException("课程活动", cm_id, code=ErrorCode.LUDIC_COURSE_MODULE_NOT_FOUND)
        return cm

    async def validate_form(self) -> Dict[str, Any]:
        """校验并保存属性表单"""
        form = FORMS[self.name](self.context, self.require_param("id"))
        return await form.validate(self.params.data)


class SectionController(Controller):
    """章节控制器"""

    name = "section"
    actions = (
        "get_parents",
        "get_children",
        "get_properties",
        "validate_form",
        "move_section_to",
        "move_to_section",
        "move_on_section",
    )
    edit_actions = (
        "get_properties",
        "validate_form",
        "move_section_to",
        "move_to_section",
        "move_on_section",
    )

    async def get_parents(self) -> str:
        return self.renderer.render_sections()

    async def get_children(self) -> str:
        section = self.get_section(self.require_param("id"))
        if not section.visible and not self.context.user_can_edit():
            raise NotFoundException("章节", section.id, code=ErrorCode.LUDIC_SECTION_NOT_FOUND)
        return self.renderer.render_course_modules(section)

    async def get_properties(self) -> str:
        section = self.get_section(self.require_param("id"))
        return self.renderer.render_section_properties(section)

    async def move_section_to(self) -> str:
        """拖动章节到另一个章节上：返回新的章节列表"""
        section = self.get_section(self.require_param("idtomove"))
        target = self.get_section(self.require_param("toid"))
        await SectionService.move_section_to(self.context.db, section.id, target.id)
        await self.context.reload()
        return self.renderer.render_sections()

    async def move_to_section(self) -> str:
        """拖动活动到章节上：返回活动原章节的活动列表"""
        cm = self.get_course_module(self.require_param("idtomove"))
        section = self.get_section(self.require_param("toid"))
        from_section_id = cm.sectionid
        await CourseModuleService.move_to_section(self.context.db, cm.id, section.id)
        await self.context.reload()
        return self.renderer.render_course_modules(self.get_section(from_section_id))

    async def move_on_section(self) -> str:
        """拖动活动到另一个活动上：返回活动原章节的活动列表"""
        cm = self.get_course_module(self.require_param("idtomove"))
        target = self.get_course_module(self.require_param("toid"))
        from_section_id = cm.sectionid
        await CourseModuleService.move_on_section(self.context.db, cm.id, target.id)
        await self.context.reload()
        return self.renderer.render_course_modules(self.get_section(from_section_id))


class CourseModuleController(Controller):
    """活动控制器"""

    name = "coursemodule"
    actions = ("get_properties", "validate_form")
    edit_actions = ("get_properties", "validate_form")

    async def get_properties(self) -> str:
        cm = self.get_course_module(self.require_param("id"))
        return self.renderer.render_course_module_properties(cm)


class SkinController(Controller):
    """皮肤控制器：返回皮肤选择弹窗"""

    name = "skin"
    actions = ("get_course_module_skin_selector", "get_section_skin_selector")
    edit_actions = actions

    async def get_course_module_skin_selector(self) -> Dict[str, Any]:
        selected = None
        inputid = "selection-popup"
        if self.params.id is not None:
            cm = self.get_course_module(self.params.id)
            form = FORMS[CourseModuleController.name](self.context, cm.id)
            element = form.get_element("skinid")
            inputid, selected = element.id, element.value
        html = self.renderer.render_skin_selector(
            self.context.get_course_module_skins(), inputid, selected,
            self.context.t("course-module-skin-selection"),
        )
        return {"html": html}

    async def get_section_skin_selector(self) -> Dict[str, Any]:
        selected = None
        inputid = "selection-popup-section"
        if self.params.id is not None:
            section = self.get_section(self.params.id)
            form = FORMS[SectionController.name](self.context, section.id)
            element = form.get_element("skinid")
            inputid, selected = element.id, element.value
        html = self.renderer.render_skin_selector(
            self.context.get_section_skins(), inputid, selected,
            self.context.t("section-skin-selection"),
        )
        return {"html": html}


CONTROLLERS: Dict[str, Type[Controller]] = {
    SectionController.name: SectionController,
    CourseModuleController.name: CourseModuleController,
    SkinController.name: SkinController,
}


async def dispatch(context: ContextHelper, params: AjaxRequest) -> ControllerResult:
    """按 controller/action 分发 AJAX 请求"""
    controller_class = CONTROLLERS.get(params.controller)
    if controller_class is None:
        raise BusinessException(ErrorCode.LUDIC_CONTROLLER_NOT_FOUND, f"控制器不存在: {params.controller}")
    controller = controller_class(context, params)
    return await controller.execute(params.action)

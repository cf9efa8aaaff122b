# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 章节与活动条目

包装数据库记录，结合请求上下文提供标题、皮肤、完成状态和访问状态
"""

from typing import TYPE_CHECKING, List, Optional

from core.config import get_settings

from .ludic_access import AccessState, CompletionInfo
from .ludic_constants import GLOBAL_SECTION_IDX, ITEM_SECTION, ITEM_COURSE_MODULE
from .ludic_models import LudicSection, LudicCourseModule
from .ludic_skins import Skin, CourseModuleInlineSkin, SectionInlineSkin

if TYPE_CHECKING:
    from .ludic_context import ContextHelper


class Section:
    """课程章节"""

    itemtype = ITEM_SECTION

    def __init__(self, record: LudicSection, context: "ContextHelper"):
        self.record = record
        self.context = context
        self.id = record.id
        self.courseid = record.course_id
        self.section = record.section
        self.name = record.name
        self.summary = record.summary or ""
        self.visible = record.visible
        self.skinid = record.skinid

    @property
    def title(self) -> str:
        if self.name:
            return self.name
        if self.is_global():
            return self.context.t("section-global-title")
        return self.context.t("section-default-title", idx=self.section)

    def is_global(self) -> bool:
        return self.section == GLOBAL_SECTION_IDX

    def get_course_modules(self) -> List["CourseModule"]:
        return self.context.get_course_modules(section_id=self.id)

    def get_visible_course_modules(self) -> List["CourseModule"]:
        """当前用户能看到的活动"""
        return [cm for cm in self.get_course_modules() if cm.get_access().visible]

    def get_skin(self) -> Skin:
        skin = Skin.get_by_id(self.skinid, self.context, item=self)
        if skin is None or skin.location != ITEM_SECTION:
            skin = SectionInlineSkin.get_instance(item=self, context=self.context)
        return skin

    def get_progression(self) -> float:
        """
        章节进度百分比
        按活动权重计算，所有权重为 0 时按数量计算
        """
        course_modules = [cm for cm in self.get_visible_course_modules() if cm.visible]
        if not course_modules:
            return 0.0
        total_weight = sum(cm.weight for cm in course_modules)
        if total_weight > 0:
            done = sum(cm.weight for cm in course_modules if cm.get_completion_info().completed)
            return done * 100.0 / total_weight
        done = sum(1 for cm in course_modules if cm.get_completion_info().completed)
        return done * 100.0 / len(course_modules)


class CourseModule:
    """课程活动"""

    itemtype = ITEM_COURSE_MODULE

    def __init__(self, record: LudicCourseModule, context: "ContextHelper"):
        self.record = record
        self.context = context
        self.id = record.id
        self.courseid = record.course_id
        self.sectionid = record.section_id
        self.name = record.name
        self.modname = record.modname
        self.order = record.sort_order
        self.visible = record.visible
        self.skinid = record.skinid
        self.weight = record.weight or 0
        self.access = record.access
        self.icon = record.icon

    @property
    def title(self) -> str:
        return self.name

    def get_section(self) -> Optional[Section]:
        return self.context.get_section_by_id(self.sectionid)

    def get_icon(self) -> str:
        if self.icon:
            return self.icon
        return get_settings().ludic_mod_icon_template.format(modname=self.modname)

    def get_url(self) -> str:
        return get_settings().ludic_mod_url_template.format(modname=self.modname, id=self.id)

    def get_skin(self) -> Skin:
        skin = Skin.get_by_id(self.skinid, self.context, item=self)
        if skin is None or skin.location != ITEM_COURSE_MODULE:
            skin = CourseModuleInlineSkin.get_instance(item=self, context=self.context)
        return skin

    def get_completion_info(self) -> CompletionInfo:
        return self.context.get_completion_info(self)

    def get_access(self) -> AccessState:
        return self.context.get_access(self)

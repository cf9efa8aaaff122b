# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 请求上下文

每个请求创建一个 ContextHelper：一次性加载课程、章节、活动、
当前用户的完成状态与授权，之后的查询都走请求内缓存。
"""

import json
import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.i18n import get_i18n
from core.security import TokenData, has_permission

from .ludic_access import AccessState, CompletionInfo, compute_section_access
from .ludic_constants import (
    ACCESS_MODES,
    COMPLETION_INCOMPLETE,
    COMPLETION_STATES,
    GLOBAL_SECTION_IDX,
    ITEM_COURSE_MODULE,
    ITEM_SECTION,
    LOCATION_COURSE,
    LOCATION_MOD,
    LOCATION_SECTION,
    LUDIC_CONFIG_OPTION,
)
from .ludic_items import Section, CourseModule
from .ludic_models import LudicCourse, LudicCompletion
from .ludic_services import (
    CourseService,
    SectionService,
    CourseModuleService,
    CompletionService,
    AccessGrantService,
)
from .ludic_skins import Skin, get_default_skin_classes

logger = logging.getLogger(__name__)

EDIT_PERMISSION = "ludic.edit"


class ContextHelper:
    """课程格式请求上下文"""

    def __init__(
        self,
        db: AsyncSession,
        course_id: int,
        user: Optional[TokenData] = None,
        editing: bool = False,
        lang: Optional[str] = None,
    ):
        self.db = db
        self.course_id = course_id
        self.user = user
        self.lang = get_i18n().resolve_language(lang or (user.lang if user else None))
        self._editing = editing
        self._course: Optional[LudicCourse] = None
        self._sections: List[Section] = []
        self._course_modules: List[CourseModule] = []
        self._completions: Dict[int, LudicCompletion] = {}
        self._grants: Set[int] = set()
        self._ludic_config: Optional[Dict[str, Any]] = None
        self._access: Optional[Dict[int, AccessState]] = None

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        course_id: int,
        user: Optional[TokenData] = None,
        editing: bool = False,
        lang: Optional[str] = None,
    ) -> "ContextHelper":
        """创建并加载上下文"""
        context = cls(db, course_id, user=user, editing=editing, lang=lang)
        await context.load()
        return context

    async def load(self):
        """从数据库加载课程数据（课程不存在时抛出 404）"""
        self._course = await CourseService.get_course_or_404(self.db, self.course_id)
        self._sections = [Section(r, self) for r in await SectionService.get_sections(self.db, self.course_id)]
        self._course_modules = [
            CourseModule(r, self) for r in await CourseModuleService.get_course_modules(self.db, self.course_id)
        ]
        self._completions = await CompletionService.get_user_completions(self.db, self.get_user_id(), self.course_id)
        self._grants = await AccessGrantService.get_user_grants(self.db, self.get_user_id(), self.course_id)
        self._ludic_config = None
        self._access = None

    async def reload(self):
        """数据变更后刷新缓存"""
        await self.load()

    def t(self, key: str, **kwargs) -> str:
        """翻译格式文案（自动加 ludic. 前缀）"""
        return get_i18n().t(f"ludic.{key}", self.lang, **kwargs)

    # ---------- 用户 / 课程 ----------

    def get_course(self) -> LudicCourse:
        return self._course

    def get_course_id(self) -> int:
        return self.course_id

    def get_user(self) -> Optional[TokenData]:
        return self.user

    def get_user_id(self) -> int:
        return self.user.user_id if self.user else 0

    def user_can_edit(self) -> bool:
        return self.user is not None and has_permission(self.user, EDIT_PERMISSION)

    def is_editing(self) -> bool:
        return self._editing and self.user_can_edit()

    def enable_editing(self):
        """编辑类 AJAX 动作始终按编辑视图渲染（仍需编辑权限）"""
        self._editing = True

    @staticmethod
    def get_location(section_idx: int = 0, cm_id: int = 0) -> str:
        """当前页面位置：活动页 / 章节页 / 课程页"""
        if cm_id and cm_id > 0:
            return LOCATION_MOD
        if section_idx and section_idx > 0:
            return LOCATION_SECTION
        return LOCATION_COURSE

    # ---------- 章节 / 活动 ----------

    def get_sections(self) -> List[Section]:
        return list(self._sections)

    def get_section_by_id(self, section_id: Optional[int]) -> Optional[Section]:
        for section in self._sections:
            if section.id == section_id:
                return section
        return None

    def get_global_section(self) -> Optional[Section]:
        for section in self._sections:
            if section.section == GLOBAL_SECTION_IDX:
                return section
        return None

    def get_global_description(self) -> str:
        section = self.get_global_section()
        return section.summary if section else ""

    def get_course_modules(self, section_id: Optional[int] = None) -> List[CourseModule]:
        if section_id is None:
            return list(self._course_modules)
        return [cm for cm in self._course_modules if cm.sectionid == section_id]

    def get_course_module_by_id(self, cm_id: Optional[int]) -> Optional[CourseModule]:
        for cm in self._course_modules:
            if cm.id == cm_id:
                return cm
        return None

    # ---------- 课程格式选项 ----------

    def get_course_format_options(self) -> Dict[str, Any]:
        return dict(self._course.format_options or {})

    def get_course_format_option_by_name(self, name: str) -> Any:
        return self.get_course_format_options().get(name)

    async def update_course_format_options(self, options: Dict[str, Any]) -> bool:
        changed = await CourseService.update_format_options(self.db, self.course_id, options)
        if changed:
            await self.reload()
        return changed

    def get_ludic_config(self) -> Dict[str, Any]:
        """解析 ludic_config；为空或不是合法 JSON 对象时返回空字典"""
        if self._ludic_config is not None:
            return self._ludic_config

        raw = self.get_course_format_option_by_name(LUDIC_CONFIG_OPTION)
        config: Any = {}
        if isinstance(raw, dict):
            config = raw
        elif isinstance(raw, str) and raw.strip():
            try:
                config = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"课程 {self.course_id} 的 ludic_config 不是合法 JSON: {e}")
                config = {}

        self._ludic_config = config if isinstance(config, dict) else {}
        return self._ludic_config

    # ---------- 皮肤 ----------

    def get_skins_config(self) -> Dict[str, Dict[str, Any]]:
        """课程配置中的皮肤定义（id -> 定义）"""
        skins = self.get_ludic_config().get("skins", {})
        definitions: Dict[str, Dict[str, Any]] = {}
        if isinstance(skins, dict):
            for skinid, definition in skins.items():
                if isinstance(definition, dict):
                    definitions[str(skinid)] = {**definition, "id": definition.get("id") or str(skinid)}
        elif isinstance(skins, list):
            for definition in skins:
                if isinstance(definition, dict) and definition.get("id"):
                    definitions[str(definition["id"])] = definition
        return definitions

    def get_skin_definitions(self) -> Dict[str, Dict[str, Any]]:
        """默认皮肤 + 课程配置皮肤（同ID时课程配置优先）"""
        definitions = {cls.get_unique_name(): cls.get_definition(self.lang) for cls in get_default_skin_classes()}
        definitions.update(self.get_skins_config())
        return definitions

    def get_default_skins(self) -> List[Skin]:
        return [cls.get_instance(context=self) for cls in get_default_skin_classes()]

    def get_skins(self) -> List[Skin]:
        skins = []
        for definition in self.get_skin_definitions().values():
            skin = Skin.get_by_instance(definition, context=self)
            if skin is not None:
                skins.append(skin)
        return skins

    def get_section_skins(self) -> List[Skin]:
        return [s for s in self.get_skins() if s.location == ITEM_SECTION]

    def get_course_module_skins(self) -> List[Skin]:
        return [s for s in self.get_skins() if s.location == ITEM_COURSE_MODULE]

    # ---------- 表单选项 ----------

    def get_course_module_weight_options(self) -> List[Dict[str, Any]]:
        return [{"value": w, "name": str(w)} for w in get_settings().ludic_weight_options]

    def get_access_options(self) -> List[Dict[str, Any]]:
        return [{"value": value, "name": self.t(key)} for value, key in ACCESS_MODES.items()]

    def get_addable_modules(self, section: Section) -> List[Dict[str, str]]:
        settings = get_settings()
        return [
            {
                "modname": modname,
                "url": settings.ludic_add_mod_url_template.format(
                    modname=modname, courseid=self.course_id, section=section.section
                ),
            }
            for modname in settings.ludic_addable_modules
        ]

    # ---------- 完成状态 / 访问 ----------

    def get_completion_info(self, cm: CourseModule) -> CompletionInfo:
        record = self._completions.get(cm.id)
        state = record.state if record else COMPLETION_INCOMPLETE
        return CompletionInfo(
            state=state,
            completionstr=self.t(COMPLETION_STATES.get(state, COMPLETION_STATES[COMPLETION_INCOMPLETE])),
            grade=record.grade if record else None,
            maxgrade=record.maxgrade if record else None,
        )

    def get_access(self, cm: CourseModule) -> AccessState:
        if self._access is None:
            states = {cm_id: c.state for cm_id, c in self._completions.items()}
            access: Dict[int, AccessState] = {}
            for section in self._sections:
                access.update(compute_section_access(
                    section.get_course_modules(),
                    states,
                    self._grants,
                    is_editor=self.user_can_edit(),
                ))
            self._access = access
        return self._access.get(cm.id, AccessState())

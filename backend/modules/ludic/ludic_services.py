# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 业务逻辑服务
"""

import json
import logging
from typing import Dict, List, Optional, Set

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import BusinessException, NotFoundException, ErrorCode
from core.events import event_bus, Events, Event

from .ludic_constants import GLOBAL_SECTION_IDX, LUDIC_CONFIG_OPTION
from .ludic_models import LudicCourse, LudicSection, LudicCourseModule, LudicCompletion, LudicAccessGrant
from .ludic_schemas import CourseCreate, SectionCreate, CourseModuleCreate, CompletionUpdate

logger = logging.getLogger(__name__)

MODULE_ID = "ludic"


async def _publish(name: str, data: dict):
    await event_bus.publish(Event(name=name, source=MODULE_ID, data=data))


class CourseService:
    """课程服务"""

    @staticmethod
    async def create_course(db: AsyncSession, user_id: int, data: CourseCreate) -> LudicCourse:
        """创建课程，同时创建全局章节和初始章节"""
        options = {}
        if data.ludic_config is not None:
            options[LUDIC_CONFIG_OPTION] = json.dumps(data.ludic_config, ensure_ascii=False)

        course = LudicCourse(
            fullname=data.fullname,
            shortname=data.shortname,
            format_options=options,
            created_by=user_id,
        )
        db.add(course)
        await db.flush()

        db.add(LudicSection(course_id=course.id, section=GLOBAL_SECTION_IDX, summary=data.summary))
        for idx in range(1, data.numsections + 1):
            db.add(LudicSection(course_id=course.id, section=idx))

        await db.commit()
        await db.refresh(course)
        logger.info(f"用户 {user_id} 创建课程: {course.fullname}（{data.numsections} 个章节）")
        return course

    @staticmethod
    async def get_course_by_id(db: AsyncSession, course_id: int) -> Optional[LudicCourse]:
        """根据ID获取课程"""
        result = await db.execute(select(LudicCourse).where(LudicCourse.id == course_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_course_or_404(db: AsyncSession, course_id: int) -> LudicCourse:
        course = await CourseService.get_course_by_id(db, course_id)
        if not course:
            raise NotFoundException("课程", course_id, code=ErrorCode.LUDIC_COURSE_NOT_FOUND)
        return course

    @staticmethod
    async def update_format_options(db: AsyncSession, course_id: int, options: dict) -> bool:
        """
        合并更新课程格式选项

        Returns:
            是否有变化
        """
        course = await CourseService.get_course_or_404(db, course_id)
        current = dict(course.format_options or {})
        merged = {**current, **options}
        if merged == current:
            return False

        # JSON 列需要整体赋值才会被识别为变更
        course.format_options = merged
        await db.commit()
        await db.refresh(course)
        return True

    @staticmethod
    async def update_ludic_config(db: AsyncSession, course_id: int, config: dict) -> bool:
        """保存课程格式配置"""
        skins = config.get("skins", {})
        definitions = skins.values() if isinstance(skins, dict) else skins
        for definition in definitions:
            if not isinstance(definition, dict) or not definition.get("location") or not definition.get("type"):
                raise BusinessException(
                    ErrorCode.LUDIC_INVALID_CONFIG,
                    "皮肤定义必须包含 location 和 type"
                )

        changed = await CourseService.update_format_options(
            db, course_id, {LUDIC_CONFIG_OPTION: json.dumps(config, ensure_ascii=False)}
        )
        if changed:
            logger.info(f"课程 {course_id} 格式配置已更新")
            await _publish(Events.LUDIC_CONFIG_UPDATED, {"course_id": course_id})
        return changed


class SectionService:
    """章节服务"""

    @staticmethod
    async def get_sections(db: AsyncSession, course_id: int) -> List[LudicSection]:
        """获取课程全部章节（按序号）"""
        stmt = select(LudicSection).where(
            LudicSection.course_id == course_id
        ).order_by(LudicSection.section, LudicSection.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_section_by_id(db: AsyncSession, section_id: int) -> Optional[LudicSection]:
        result = await db.execute(select(LudicSection).where(LudicSection.id == section_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_section_or_404(db: AsyncSession, section_id: int) -> LudicSection:
        section = await SectionService.get_section_by_id(db, section_id)
        if not section:
            raise NotFoundException("章节", section_id, code=ErrorCode.LUDIC_SECTION_NOT_FOUND)
        return section

    @staticmethod
    async def create_section(db: AsyncSession, course_id: int, data: SectionCreate) -> LudicSection:
        """在课程末尾追加章节"""
        await CourseService.get_course_or_404(db, course_id)
        result = await db.execute(
            select(func.max(LudicSection.section)).where(LudicSection.course_id == course_id)
        )
        last_idx = result.scalar()
        section = LudicSection(
            course_id=course_id,
            section=(last_idx if last_idx is not None else GLOBAL_SECTION_IDX) + 1,
            **data.model_dump()
        )
        db.add(section)
        await db.commit()
        await db.refresh(section)
        logger.info(f"课程 {course_id} 新增章节 {section.section}")
        return section

    @staticmethod
    async def update_section(db: AsyncSession, section_id: int, **fields) -> LudicSection:
        """更新章节属性"""
        section = await SectionService.get_section_or_404(db, section_id)
        for key, value in fields.items():
            setattr(section, key, value)
        await db.commit()
        await db.refresh(section)
        await _publish(Events.LUDIC_SECTION_UPDATED, {"section_id": section_id, "fields": list(fields)})
        return section

    @staticmethod
    async def move_section_to(db: AsyncSession, section_id: int, target_id: int) -> LudicSection:
        """
        把章节移动到目标章节的位置，其余章节顺延
        全局章节不能移动，也不能作为目标
        """
        section = await SectionService.get_section_or_404(db, section_id)
        target = await SectionService.get_section_or_404(db, target_id)

        if section.course_id != target.course_id:
            raise BusinessException(ErrorCode.LUDIC_INVALID_MOVE, "不能跨课程移动章节")
        if GLOBAL_SECTION_IDX in (section.section, target.section):
            raise BusinessException(ErrorCode.LUDIC_INVALID_MOVE, "全局章节不能移动")
        if section.id == target.id:
            return section

        sections = [s for s in await SectionService.get_sections(db, section.course_id) if s.section != GLOBAL_SECTION_IDX]
        ids = [s.id for s in sections]
        new_pos = ids.index(target.id)
        ids.remove(section.id)
        ids.insert(new_pos, section.id)

        by_id = {s.id: s for s in sections}
        for idx, sid in enumerate(ids, start=1):
            by_id[sid].section = idx

        await db.commit()
        await db.refresh(section)
        logger.info(f"章节 {section_id} 移动到位置 {section.section}")
        await _publish(Events.LUDIC_SECTION_MOVED, {
            "course_id": section.course_id,
            "section_id": section_id,
            "position": section.section,
        })
        return section


class CourseModuleService:
    """活动服务"""

    @staticmethod
    async def get_course_modules(db: AsyncSession, course_id: int) -> List[LudicCourseModule]:
        """获取课程全部活动（按章节内顺序）"""
        stmt = select(LudicCourseModule).where(
            LudicCourseModule.course_id == course_id
        ).order_by(LudicCourseModule.section_id, LudicCourseModule.sort_order, LudicCourseModule.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_section_modules(db: AsyncSession, section_id: int) -> List[LudicCourseModule]:
        stmt = select(LudicCourseModule).where(
            LudicCourseModule.section_id == section_id
        ).order_by(LudicCourseModule.sort_order, LudicCourseModule.id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_course_module_by_id(db: AsyncSession, cm_id: int) -> Optional[LudicCourseModule]:
        result = await db.execute(select(LudicCourseModule).where(LudicCourseModule.id == cm_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_course_module_or_404(db: AsyncSession, cm_id: int) -> LudicCourseModule:
        cm = await CourseModuleService.get_course_module_by_id(db, cm_id)
        if not cm:
            raise NotFoundException("课程活动", cm_id, code=ErrorCode.LUDIC_COURSE_MODULE_NOT_FOUND)
        return cm

    @staticmethod
    async def create_course_module(db: AsyncSession, section_id: int, data: CourseModuleCreate) -> LudicCourseModule:
        """在章节末尾添加活动"""
        section = await SectionService.get_section_or_404(db, section_id)
        cm = LudicCourseModule(
            course_id=section.course_id,
            section_id=section.id,
            sort_order=await CourseModuleService._next_sort_order(db, section.id),
            **data.model_dump()
        )
        db.add(cm)
        await db.commit()
        await db.refresh(cm)
        logger.info(f"章节 {section_id} 新增活动: {cm.name} ({cm.modname})")
        return cm

    @staticmethod
    async def update_course_module(db: AsyncSession, cm_id: int, **fields) -> LudicCourseModule:
        """更新活动属性"""
        cm = await CourseModuleService.get_course_module_or_404(db, cm_id)
        for key, value in fields.items():
            setattr(cm, key, value)
        await db.commit()
        await db.refresh(cm)
        await _publish(Events.LUDIC_COURSE_MODULE_UPDATED, {"cm_id": cm_id, "fields": list(fields)})
        return cm

    @staticmethod
    async def _next_sort_order(db: AsyncSession, section_id: int) -> int:
        result = await db.execute(
            select(func.max(LudicCourseModule.sort_order)).where(LudicCourseModule.section_id == section_id)
        )
        last = result.scalar()
        return 0 if last is None else last + 1

    @staticmethod
    def _renumber(course_modules: List[LudicCourseModule]):
        for order, cm in enumerate(course_modules):
            cm.sort_order = order

    @staticmethod
    async def move_to_section(db: AsyncSession, cm_id: int, section_id: int) -> LudicCourseModule:
        """把活动移动到章节末尾"""
        cm = await CourseModuleService.get_course_module_or_404(db, cm_id)
        section = await SectionService.get_section_or_404(db, section_id)
        if cm.course_id != section.course_id:
            raise BusinessException(ErrorCode.LUDIC_INVALID_MOVE, "不能跨课程移动活动")

        from_section_id = cm.section_id
        if from_section_id != section.id:
            cm.sort_order = await CourseModuleService._next_sort_order(db, section.id)
            cm.section_id = section.id
            await db.flush()
            CourseModuleService._renumber(await CourseModuleService.get_section_modules(db, from_section_id))
        else:
            # 同一章节内：移到末尾
            modules = [m for m in await CourseModuleService.get_section_modules(db, section.id) if m.id != cm.id]
            CourseModuleService._renumber(modules + [cm])

        await db.commit()
        await db.refresh(cm)
        logger.info(f"活动 {cm_id} 移动到章节 {section_id} 末尾")
        await _publish(Events.LUDIC_COURSE_MODULE_MOVED, {
            "cm_id": cm_id,
            "from_section_id": from_section_id,
            "to_section_id": section.id,
            "position": cm.sort_order,
        })
        return cm

    @staticmethod
    async def move_on_section(db: AsyncSession, cm_id: int, target_cm_id: int) -> LudicCourseModule:
        """把活动插入到目标活动所在的位置"""
        cm = await CourseModuleService.get_course_module_or_404(db, cm_id)
        target = await CourseModuleService.get_course_module_or_404(db, target_cm_id)
        if cm.course_id != target.course_id:
            raise BusinessException(ErrorCode.LUDIC_INVALID_MOVE, "不能跨课程移动活动")

        from_section_id = cm.section_id
        if cm.id == target.id:
            return cm

        target_modules = await CourseModuleService.get_section_modules(db, target.section_id)
        ids = [m.id for m in target_modules]
        new_pos = ids.index(target.id)
        if cm.id in ids:
            ids.remove(cm.id)
        ids.insert(new_pos, cm.id)

        by_id = {m.id: m for m in target_modules}
        by_id[cm.id] = cm
        cm.section_id = target.section_id
        CourseModuleService._renumber([by_id[i] for i in ids])
        await db.flush()

        if from_section_id != target.section_id:
            CourseModuleService._renumber(await CourseModuleService.get_section_modules(db, from_section_id))

        await db.commit()
        await db.refresh(cm)
        logger.info(f"活动 {cm_id} 移动到活动 {target_cm_id} 的位置")
        await _publish(Events.LUDIC_COURSE_MODULE_MOVED, {
            "cm_id": cm_id,
            "from_section_id": from_section_id,
            "to_section_id": cm.section_id,
            "position": cm.sort_order,
        })
        return cm


class CompletionService:
    """完成状态服务"""

    @staticmethod
    async def get_user_completions(db: AsyncSession, user_id: int, course_id: int) -> Dict[int, LudicCompletion]:
        """获取用户在课程内的全部完成记录（cm_id -> 记录）"""
        if not user_id:
            return {}
        stmt = select(LudicCompletion).join(
            LudicCourseModule, LudicCourseModule.id == LudicCompletion.cm_id
        ).where(
            LudicCompletion.user_id == user_id,
            LudicCourseModule.course_id == course_id
        )
        result = await db.execute(stmt)
        return {c.cm_id: c for c in result.scalars().all()}

    @staticmethod
    async def set_completion(db: AsyncSession, cm_id: int, data: CompletionUpdate) -> LudicCompletion:
        """写入（或覆盖）完成状态"""
        await CourseModuleService.get_course_module_or_404(db, cm_id)
        result = await db.execute(select(LudicCompletion).where(
            LudicCompletion.cm_id == cm_id,
            LudicCompletion.user_id == data.user_id
        ))
        completion = result.scalar_one_or_none()
        if completion is None:
            completion = LudicCompletion(cm_id=cm_id, user_id=data.user_id)
            db.add(completion)

        completion.state = data.state
        completion.grade = data.grade
        completion.maxgrade = data.maxgrade
        await db.commit()
        await db.refresh(completion)

        await _publish(Events.LUDIC_COMPLETION_UPDATED, {
            "cm_id": cm_id,
            "user_id": data.user_id,
            "state": data.state,
        })
        return completion


class AccessGrantService:
    """受控访问授权服务"""

    @staticmethod
    async def get_user_grants(db: AsyncSession, user_id: int, course_id: int) -> Set[int]:
        """获取用户在课程内被授权的活动ID"""
        if not user_id:
            return set()
        stmt = select(LudicAccessGrant.cm_id).join(
            LudicCourseModule, LudicCourseModule.id == LudicAccessGrant.cm_id
        ).where(
            LudicAccessGrant.user_id == user_id,
            LudicCourseModule.course_id == course_id
        )
        result = await db.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    async def grant(db: AsyncSession, cm_id: int, user_id: int, granted_by: int) -> bool:
        """
        授权用户访问受控活动

        Returns:
            是否新增了授权
        """
        await CourseModuleService.get_course_module_or_404(db, cm_id)
        result = await db.execute(select(LudicAccessGrant).where(
            LudicAccessGrant.cm_id == cm_id,
            LudicAccessGrant.user_id == user_id
        ))
        if result.scalar_one_or_none():
            return False

        db.add(LudicAccessGrant(cm_id=cm_id, user_id=user_id, granted_by=granted_by))
        await db.commit()
        logger.info(f"用户 {granted_by} 授权用户 {user_id} 访问活动 {cm_id}")
        return True

    @staticmethod
    async def revoke(db: AsyncSession, cm_id: int, user_id: int) -> bool:
        """撤销授权"""
        result = await db.execute(delete(LudicAccessGrant).where(
            LudicAccessGrant.cm_id == cm_id,
            LudicAccessGrant.user_id == user_id
        ))
        await db.commit()
        return (result.rowcount or 0) > 0

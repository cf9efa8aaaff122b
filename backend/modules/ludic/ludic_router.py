# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - API 路由
课程页面、AJAX 控制器入口，以及宿主平台使用的管理接口
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_current_user, require_permission, TokenData
from schemas.response import ApiResponse, success
from utils.request import get_accept_language

from .ludic_context import ContextHelper
from .ludic_controllers import dispatch, parse_query_formdata
from .ludic_renderers import LudicRenderer
from .ludic_schemas import (
    AjaxRequest, CourseCreate, CourseInfo, LudicConfigUpdate,
    SectionCreate, SectionInfo, CourseModuleCreate, CourseModuleInfo,
    CompletionUpdate, CompletionInfo, GrantCreate, SkinList,
)
from .ludic_services import (
    CourseService, SectionService, CourseModuleService,
    CompletionService, AccessGrantService,
)

logger = logging.getLogger(__name__)
router = APIRouter()


async def _build_context(
    request: Request,
    db: AsyncSession,
    user: TokenData,
    course_id: int,
    editing: bool,
) -> ContextHelper:
    return await ContextHelper.create(
        db, course_id, user=user, editing=editing,
        lang=user.lang or get_accept_language(request),
    )


def _to_response(result):
    if isinstance(result, dict):
        return JSONResponse(content=result)
    return HTMLResponse(content=result)


# ========== 课程页面 ==========

@router.get("/course/{course_id}/view", response_class=HTMLResponse)
async def view_course(
    course_id: int,
    request: Request,
    editmode: bool = Query(False, description="是否进入编辑模式"),
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(get_current_user)
):
    """课程格式页面（无编辑权限时回退到学习视图）"""
    context = await _build_context(request, db, user, course_id, editmode)
    renderer = LudicRenderer(context)
    if context.is_editing():
        return HTMLResponse(renderer.render_edit_page())
    return HTMLResponse(renderer.render_page())


# ========== AJAX ==========

@router.get("/ajax")
async def ajax_get(
    request: Request,
    controller: str = Query(...),
    action: str = Query(...),
    courseid: int = Query(..., ge=1),
    id: Optional[int] = Query(None),
    idtomove: Optional[int] = Query(None),
    toid: Optional[int] = Query(None),
    editmode: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(get_current_user)
):
    """AJAX 入口（GET，表单数据按 jQuery 方式编码）"""
    params = AjaxRequest(
        controller=controller,
        action=action,
        courseid=courseid,
        id=id,
        idtomove=idtomove,
        toid=toid,
        editmode=editmode,
        data=parse_query_formdata(request.query_params),
    )
    context = await _build_context(request, db, user, courseid, editmode)
    return _to_response(await dispatch(context, params))


@router.post("/ajax")
async def ajax_post(
    params: AjaxRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(get_current_user)
):
    """AJAX 入口（POST JSON）"""
    context = await _build_context(request, db, user, params.courseid, params.editmode)
    return _to_response(await dispatch(context, params))


# ========== 课程管理 ==========

@router.post("/course/create", response_model=ApiResponse[CourseInfo])
async def create_course(
    data: CourseCreate,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """创建课程"""
    course = await CourseService.create_course(db, user.user_id, data)
    return success(data=CourseInfo.model_validate(course).model_dump(mode="json"), message="课程创建成功")


@router.get("/course/{course_id}/config")
async def get_config(
    course_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """获取课程格式配置"""
    context = await _build_context(request, db, user, course_id, False)
    return success(data=context.get_ludic_config())


@router.put("/course/{course_id}/config")
async def update_config(
    course_id: int,
    data: LudicConfigUpdate,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """更新课程格式配置"""
    changed = await CourseService.update_ludic_config(db, course_id, data.ludic_config)
    return success(data={"changed": changed}, message="配置已保存" if changed else "配置未变化")


@router.get("/course/{course_id}/skins", response_model=ApiResponse[SkinList])
async def list_skins(
    course_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(get_current_user)
):
    """课程可用皮肤"""
    context = await _build_context(request, db, user, course_id, False)
    skins = SkinList(
        coursemodule=[s.to_dict() for s in context.get_course_module_skins()],
        section=[s.to_dict() for s in context.get_section_skins()],
    )
    return success(data=skins.model_dump())


@router.post("/course/{course_id}/sections", response_model=ApiResponse[SectionInfo])
async def create_section(
    course_id: int,
    data: SectionCreate,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """添加章节"""
    section = await SectionService.create_section(db, course_id, data)
    return success(data=SectionInfo.model_validate(section).model_dump(), message="章节已添加")


@router.post("/sections/{section_id}/coursemodules", response_model=ApiResponse[CourseModuleInfo])
async def create_course_module(
    section_id: int,
    data: CourseModuleCreate,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """向章节添加活动"""
    cm = await CourseModuleService.create_course_module(db, section_id, data)
    return success(data=CourseModuleInfo.model_validate(cm).model_dump(), message="活动已添加")


# ========== 完成状态 / 授权 ==========

@router.post("/coursemodules/{cm_id}/completion", response_model=ApiResponse[CompletionInfo])
async def set_completion(
    cm_id: int,
    data: CompletionUpdate,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """写入活动完成状态（由宿主平台推送）"""
    completion = await CompletionService.set_completion(db, cm_id, data)
    return success(data=CompletionInfo.model_validate(completion).model_dump())


@router.post("/coursemodules/{cm_id}/grants")
async def grant_access(
    cm_id: int,
    data: GrantCreate,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """授权学生访问受控活动"""
    created = await AccessGrantService.grant(db, cm_id, data.user_id, user.user_id)
    return success(data={"created": created}, message="授权成功" if created else "已授权")


@router.delete("/coursemodules/{cm_id}/grants/{user_id}")
async def revoke_access(
    cm_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    user: TokenData = Depends(require_permission("ludic.edit"))
):
    """撤销受控活动授权"""
    removed = await AccessGrantService.revoke(db, cm_id, user_id)
    return success(data={"removed": removed}, message="授权已撤销" if removed else "授权不存在")

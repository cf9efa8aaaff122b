# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 数据验证模型
"""

from datetime import datetime
from typing import Any, Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .ludic_constants import ACCESS_ACCESSIBLE


# ========== 课程 ==========

class CourseCreate(BaseModel):
    """创建课程请求"""
    fullname: str = Field(..., min_length=1, max_length=255, description="课程名称")
    shortname: Optional[str] = Field(None, max_length=100, description="课程简称")
    summary: Optional[str] = Field(None, description="课程描述（保存为全局章节简介）")
    numsections: int = Field(1, ge=0, le=52, description="初始章节数（不含全局章节）")
    ludic_config: Optional[dict] = Field(None, description="课程格式配置")


class CourseInfo(BaseModel):
    """课程信息"""
    id: int
    fullname: str
    shortname: Optional[str] = None
    format_options: dict = {}
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LudicConfigUpdate(BaseModel):
    """更新课程格式配置"""
    ludic_config: dict = Field(..., description="完整的格式配置，skins 为皮肤定义")

    @field_validator("ludic_config")
    @classmethod
    def check_skins(cls, value: dict) -> dict:
        skins = value.get("skins", {})
        if not isinstance(skins, (dict, list)):
            raise ValueError("skins 必须是对象或数组")
        return value


# ========== 章节 ==========

class SectionCreate(BaseModel):
    """创建章节请求"""
    name: Optional[str] = Field(None, max_length=255, description="章节名称")
    summary: Optional[str] = Field(None, description="章节简介")
    visible: bool = True
    skinid: Optional[str] = Field(None, max_length=100)


class SectionInfo(BaseModel):
    """章节信息"""
    id: int
    course_id: int
    section: int
    name: Optional[str] = None
    summary: Optional[str] = None
    visible: bool
    skinid: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ========== 活动 ==========

class CourseModuleCreate(BaseModel):
    """创建活动请求"""
    name: str = Field(..., min_length=1, max_length=255, description="活动名称")
    modname: str = Field(..., min_length=1, max_length=50, description="活动类型")
    icon: Optional[str] = Field(None, max_length=500)
    visible: bool = True
    skinid: Optional[str] = Field(None, max_length=100)
    weight: int = Field(0, ge=0)
    access: int = Field(ACCESS_ACCESSIBLE, ge=1, le=6, description="访问模式")


class CourseModuleInfo(BaseModel):
    """活动信息"""
    id: int
    course_id: int
    section_id: int
    name: str
    modname: str
    icon: Optional[str] = None
    sort_order: int
    visible: bool
    skinid: Optional[str] = None
    weight: int
    access: int

    model_config = ConfigDict(from_attributes=True)


# ========== 完成状态 / 授权 ==========

class CompletionUpdate(BaseModel):
    """宿主平台推送的完成状态"""
    user_id: int = Field(..., ge=1)
    state: int = Field(..., ge=0, le=3, description="0 未完成 1 完成 2 通过 3 未通过")
    grade: Optional[float] = Field(None, ge=0)
    maxgrade: Optional[float] = Field(None, gt=0)


class CompletionInfo(BaseModel):
    """完成状态信息"""
    user_id: int
    cm_id: int
    state: int
    grade: Optional[float] = None
    maxgrade: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class GrantCreate(BaseModel):
    """受控访问授权请求"""
    user_id: int = Field(..., ge=1)


# ========== AJAX ==========

class AjaxRequest(BaseModel):
    """格式前端脚本发出的 AJAX 参数"""
    controller: str = Field(..., min_length=1, max_length=50)
    action: str = Field(..., min_length=1, max_length=100)
    courseid: int = Field(..., ge=1)
    id: Optional[int] = None
    idtomove: Optional[int] = None
    toid: Optional[int] = None
    userid: Optional[int] = None
    editmode: bool = False
    data: Any = None


class SkinListItem(BaseModel):
    """皮肤列表项"""
    id: str
    location: str
    type: str
    title: Optional[str] = None
    description: Optional[str] = None
    editimage: dict = {}


class SkinList(BaseModel):
    """课程可用皮肤"""
    coursemodule: List[SkinListItem] = []
    section: List[SkinListItem] = []

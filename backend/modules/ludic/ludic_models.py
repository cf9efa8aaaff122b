# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 数据模型

课程、章节、活动的最小镜像，供格式渲染使用；
完成状态由宿主平台推送，访问授权由教师手动发放
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, Boolean, Float, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from utils.timezone import get_utc_now

from .ludic_constants import ACCESS_ACCESSIBLE, COMPLETION_INCOMPLETE


class LudicCourse(Base):
    """课程表"""
    __tablename__ = "ludic_courses"
    __table_args__ = {'extend_existing': True, 'comment': '课程表'}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    fullname: Mapped[str] = mapped_column(String(255), nullable=False, comment="课程名称")
    shortname: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="课程简称")
    format_options: Mapped[dict] = mapped_column(JSON, default=dict, comment="课程格式选项（含 ludic_config）")
    created_by: Mapped[int] = mapped_column(Integer, default=0, comment="创建者ID")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now, comment="更新时间")


class LudicSection(Base):
    """课程章节表（section=0 为全局章节）"""
    __tablename__ = "ludic_sections"
    __table_args__ = {'extend_existing': True, 'comment': '课程章节表'}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    course_id: Mapped[int] = mapped_column(ForeignKey("ludic_courses.id", ondelete="CASCADE"), index=True, comment="所属课程ID")
    section: Mapped[int] = mapped_column(Integer, default=0, comment="章节序号")
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, comment="章节名称")
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="章节简介")
    visible: Mapped[bool] = mapped_column(Boolean, default=True, comment="是否可见")
    skinid: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="皮肤ID")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now, comment="更新时间")


class LudicCourseModule(Base):
    """课程活动表"""
    __tablename__ = "ludic_course_modules"
    __table_args__ = {'extend_existing': True, 'comment': '课程活动表'}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    course_id: Mapped[int] = mapped_column(ForeignKey("ludic_courses.id", ondelete="CASCADE"), index=True, comment="所属课程ID")
    section_id: Mapped[int] = mapped_column(ForeignKey("ludic_sections.id", ondelete="CASCADE"), index=True, comment="所属章节ID")
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="活动名称")
    modname: Mapped[str] = mapped_column(String(50), nullable=False, comment="活动类型，如 quiz/page")
    icon: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="活动图标URL")
    sort_order: Mapped[int] = mapped_column(Integer, default=0, comment="章节内排序")
    visible: Mapped[bool] = mapped_column(Boolean, default=True, comment="教师是否可见")
    skinid: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="皮肤ID")
    weight: Mapped[int] = mapped_column(Integer, default=0, comment="权重")
    access: Mapped[int] = mapped_column(Integer, default=ACCESS_ACCESSIBLE, comment="访问模式 1-6")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now, comment="更新时间")


class LudicCompletion(Base):
    """活动完成状态表"""
    __tablename__ = "ludic_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "cm_id", name="uq_ludic_completion_user_cm"),
        {'extend_existing': True, 'comment': '活动完成状态表'}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    user_id: Mapped[int] = mapped_column(Integer, index=True, comment="用户ID")
    cm_id: Mapped[int] = mapped_column(ForeignKey("ludic_course_modules.id", ondelete="CASCADE"), comment="活动ID")
    state: Mapped[int] = mapped_column(Integer, default=COMPLETION_INCOMPLETE, comment="完成状态 0-3")
    grade: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="得分")
    maxgrade: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="满分")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, onupdate=get_utc_now, comment="更新时间")


class LudicAccessGrant(Base):
    """受控访问授权表"""
    __tablename__ = "ludic_access_grants"
    __table_args__ = (
        UniqueConstraint("user_id", "cm_id", name="uq_ludic_grant_user_cm"),
        {'extend_existing': True, 'comment': '受控访问授权表'}
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键ID")
    user_id: Mapped[int] = mapped_column(Integer, index=True, comment="被授权用户ID")
    cm_id: Mapped[int] = mapped_column(ForeignKey("ludic_course_modules.id", ondelete="CASCADE"), comment="活动ID")
    granted_by: Mapped[int] = mapped_column(Integer, default=0, comment="授权人ID")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=get_utc_now, comment="授权时间")

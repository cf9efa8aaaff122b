# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 常量定义
"""

# 访问模式
ACCESS_ACCESSIBLE = 1
ACCESS_CHAINED = 2
ACCESS_DISCOVERABLE = 3
ACCESS_CONTROLLED = 4
ACCESS_GROUPED = 5
ACCESS_CHAINED_AND_GROUPED = 6

# 访问模式 -> 语言包键
ACCESS_MODES = {
    ACCESS_ACCESSIBLE: "access-accessible",
    ACCESS_CHAINED: "access-chained",
    ACCESS_DISCOVERABLE: "access-discoverable",
    ACCESS_CONTROLLED: "access-controlled",
    ACCESS_GROUPED: "access-grouped",
    ACCESS_CHAINED_AND_GROUPED: "access-chained-and-grouped",
}

# 完成状态
COMPLETION_INCOMPLETE = 0
COMPLETION_COMPLETE = 1
COMPLETION_COMPLETE_PASS = 2
COMPLETION_COMPLETE_FAIL = 3

COMPLETION_STATES = {
    COMPLETION_INCOMPLETE: "completion-incomplete",
    COMPLETION_COMPLETE: "completion-complete",
    COMPLETION_COMPLETE_PASS: "completion-complete-pass",
    COMPLETION_COMPLETE_FAIL: "completion-complete-fail",
}

# 视为"已完成"的状态（不及格不算）
COMPLETED_STATES = (COMPLETION_COMPLETE, COMPLETION_COMPLETE_PASS)

# 页面位置
LOCATION_COURSE = "course"
LOCATION_SECTION = "section"
LOCATION_MOD = "mod"

# 皮肤作用对象 / 条目类型
ITEM_SECTION = "section"
ITEM_COURSE_MODULE = "coursemodule"

# 课程格式选项中保存配置的键
LUDIC_CONFIG_OPTION = "ludic_config"

# 全局章节序号
GLOBAL_SECTION_IDX = 0

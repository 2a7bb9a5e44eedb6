"""
导入流水线阶段定义

职责：
1. 定义各阶段名称与进度区间
2. 为进度回调提供阶段边界

测试要点：
- test_stage_order: 阶段顺序与进度区间单调
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ImportStage(str, Enum):
    """导入阶段枚举"""
    READ = "READ"
    PARSE = "PARSE"
    CONVERT = "CONVERT"
    REPROJECT = "REPROJECT"
    FINISH = "FINISH"


@dataclass
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点


# 导入流水线各阶段配置
IMPORT_STAGES: list[PipelineStage] = [
    PipelineStage(ImportStage.READ.value, 0, 10),
    PipelineStage(ImportStage.PARSE.value, 10, 25),
    PipelineStage(ImportStage.CONVERT.value, 25, 75),
    PipelineStage(ImportStage.REPROJECT.value, 75, 95),
    PipelineStage(ImportStage.FINISH.value, 95, 100),
]

STAGES_BY_NAME: dict[str, PipelineStage] = {stage.name: stage for stage in IMPORT_STAGES}

"""
流水线模块 - 导入编排
"""

from .context import ImportContext
from .importer import DxfImporter
from .stages import IMPORT_STAGES, ImportStage, PipelineStage

__all__ = [
    "DxfImporter",
    "ImportContext",
    "ImportStage",
    "PipelineStage",
    "IMPORT_STAGES",
]

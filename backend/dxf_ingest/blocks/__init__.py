"""
块模块 - INSERT 引用展开
"""

from .resolver import BlockResolver, CachedBlock, insert_matrix

__all__ = [
    "BlockResolver",
    "CachedBlock",
    "insert_matrix",
]

"""
组码切分器 - 文本行 → (组码, 值) 对 → 段 → 记录

规则：
- 组码行必须为整数；非整数组码行跳过（不中断整个段）
- 组码位置的空行跳过；值两端空白去除
- 段以 0/SECTION + 2/<名称> 开始，以 0/ENDSEC 结束；缺失 ENDSEC 时在下一段或文件尾收束
- 记录以组码0开始，值为记录类型（实体名/TABLE/BLOCK 等）
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import NamedTuple

logger = logging.getLogger(__name__)


class Tag(NamedTuple):
    """组码-值对"""
    code: int
    value: str


@dataclass
class Section:
    """DXF 段"""
    name: str
    tags: list[Tag] = field(default_factory=list)
    terminated: bool = True  # 是否以 ENDSEC 正常结束


def iter_tags(lines: Iterable[str]) -> Iterator[Tag]:
    """将文本行切分为组码-值对"""
    it = iter(lines)
    skipped = 0
    for line in it:
        code_text = line.strip()
        if not code_text:
            continue
        try:
            code = int(code_text)
        except ValueError:
            skipped += 1
            logger.debug(f"跳过非整数组码行: {code_text[:40]!r}")
            continue

        value = next(it, None)
        if value is None:
            logger.debug(f"文件末尾组码 {code} 缺少值行")
            break
        yield Tag(code, value.strip())

    if skipped:
        logger.warning(f"共跳过 {skipped} 个非整数组码行")


def _is_marker(tag: Tag, value: str) -> bool:
    return tag.code == 0 and tag.value.upper() == value


def iter_sections(tags: Iterable[Tag]) -> Iterator[Section]:
    """按 SECTION/ENDSEC 划分段"""
    it = iter(tags)
    current: Section | None = None

    for tag in it:
        if _is_marker(tag, "SECTION"):
            if current is not None:
                # 上一段缺失 ENDSEC
                current.terminated = False
                yield current
            name_tag = next(it, None)
            if name_tag is None:
                return
            if name_tag.code != 2:
                logger.warning(f"SECTION 后缺少段名（组码{name_tag.code}），按未命名段处理")
                current = Section(name="", tags=[name_tag])
            else:
                current = Section(name=name_tag.value.upper())
            continue

        if current is None:
            if _is_marker(tag, "EOF"):
                return
            continue

        if _is_marker(tag, "ENDSEC"):
            yield current
            current = None
            continue

        if _is_marker(tag, "EOF"):
            break

        current.tags.append(tag)

    if current is not None:
        current.terminated = False
        yield current


def find_section(tags: Iterable[Tag], name: str) -> list[Tag]:
    """查找指定段的组码（不存在返回空列表）"""
    target = name.upper()
    for section in iter_sections(tags):
        if section.name == target:
            return section.tags
    return []


def split_records(tags: Iterable[Tag]) -> Iterator[tuple[str, list[Tag]]]:
    """以组码0为界切分记录，产出 (记录类型, 记录内组码)"""
    kind: str | None = None
    body: list[Tag] = []
    for tag in tags:
        if tag.code == 0:
            if kind is not None:
                yield kind, body
            kind = tag.value.upper()
            body = []
        elif kind is not None:
            body.append(tag)
    if kind is not None:
        yield kind, body

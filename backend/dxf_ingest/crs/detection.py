"""
SRID 判定 - 显式值 > 投影文本 > 坐标范围推断 > 默认值

投影文本解析顺序：
1. 最外层 AUTHORITY["EPSG","n"]（最后一次出现）或 EPSG:n / +init=epsg:n
2. 坐标系目录中的匹配模式（PROJCS 文本跳过地理坐标系）
3. pyproj CRS 解析后 to_epsg()

测试要点：
- test_explicit_wins: 显式值优先
- test_prj_lv95: ESRI .prj 文本识别为 2056
- test_heuristic_lv03: 坐标量级推断为 21781
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import NamedTuple

from pyproj import CRS
from pyproj.exceptions import CRSError

from ..config import CrsCatalog, load_crs_catalog
from ..models import BBox, SridSource

logger = logging.getLogger(__name__)

_AUTHORITY_RE = re.compile(r'AUTHORITY\s*\[\s*"EPSG"\s*,\s*"?(\d+)"?\s*\]', re.IGNORECASE)
_EPSG_RE = re.compile(r"(?:\+init=)?EPSG:{1,2}(\d+)", re.IGNORECASE)


@dataclass
class SridContext:
    """SRID 判定输入"""
    explicit: int | None = None
    projection_text: str | None = None
    sample_bbox: BBox | None = None
    default: int | None = None


class SridDetection(NamedTuple):
    srid: int
    source: SridSource


def srid_from_projection_text(text: str, catalog: CrsCatalog) -> int | None:
    """从 WKT/proj4/.prj 文本解析 SRID（无法识别返回 None）"""
    text = text.strip()
    if not text:
        return None

    authorities = _AUTHORITY_RE.findall(text)
    if authorities:
        return int(authorities[-1])
    match = _EPSG_RE.search(text)
    if match:
        return int(match.group(1))

    system = catalog.match_text(text)
    if system is not None:
        return system.srid

    try:
        epsg = CRS.from_user_input(text).to_epsg()
    except CRSError as e:
        logger.debug(f"pyproj 无法解析投影文本: {e}")
        return None
    return epsg


class SridResolver:
    """
    SRID 判定器

    使用方式：
        resolver = SridResolver()
        detection = resolver.determine(SridContext(projection_text=prj))
    """

    def __init__(self, catalog: CrsCatalog | None = None, default_srid: int | None = None):
        self.catalog = catalog or load_crs_catalog()
        self.default_srid = default_srid or self.catalog.default_srid

    def determine(self, context: SridContext) -> SridDetection:
        if context.explicit:
            return SridDetection(context.explicit, SridSource.EXPLICIT)

        if context.projection_text:
            srid = srid_from_projection_text(context.projection_text, self.catalog)
            if srid:
                logger.info(f"由投影文本识别坐标系: EPSG:{srid}")
                return SridDetection(srid, SridSource.PROJECTION)
            logger.warning("投影文本无法识别，继续按坐标范围推断")

        if context.sample_bbox is not None:
            system = self.catalog.match_bounds(context.sample_bbox)
            if system is not None:
                logger.info(f"由坐标范围推断坐标系: EPSG:{system.srid} ({system.name})")
                return SridDetection(system.srid, SridSource.HEURISTIC)

        return SridDetection(context.default or self.default_srid, SridSource.DEFAULT)

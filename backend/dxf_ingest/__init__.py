"""
DXF 导入系统 - 后端核心模块

模块结构：
- config/     运行期配置、导入选项与坐标系目录
- models/     数据模型定义（实体/图层/块/几何/要素/统计）
- dxf/        DXF 读取与解析（分块读取/组码切分/实体组装/图层注册表）
- geometry/   几何转换（矩阵/插值/各实体转换器）
- blocks/     块引用（INSERT）解析与展开
- crs/        坐标系判定、重投影与双格式输出
- pipeline/   导入流水线编排
"""

__version__ = "0.1.0"

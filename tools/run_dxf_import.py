import argparse
import json
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def _split(value: str) -> list[str] | None:
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Import a DXF file and write GeoJSON."
    )
    parser.add_argument("dxf", help="DXF文件路径")
    parser.add_argument("--prj", default="", help="可选：投影文件（默认读取同名 .prj）")
    parser.add_argument("--srid", type=int, default=None, help="可选：显式源SRID")
    parser.add_argument("--target-srid", type=int, default=None, help="目标SRID（默认按配置，4326）")
    parser.add_argument("--types", default="", help="实体类型白名单，逗号分隔（如 LINE,CIRCLE）")
    parser.add_argument("--layers", default="", help="图层白名单，逗号分隔")
    parser.add_argument("--config", default="", help="可选：运行期配置 YAML")
    parser.add_argument("--out", default="", help="GeoJSON 输出路径（默认：<dxf>.geojson）")
    args = parser.parse_args()

    _add_backend_to_path()
    from dxf_ingest.config import RuntimeConfig, configure_logging, get_config  # type: ignore
    from dxf_ingest.interfaces import DxfIngestError  # type: ignore
    from dxf_ingest.pipeline import DxfImporter  # type: ignore

    config = RuntimeConfig.from_yaml(args.config) if args.config else get_config()
    configure_logging(config)

    dxf_path = Path(args.dxf)
    if not dxf_path.exists():
        print(f"文件不存在: {dxf_path}")
        return 1

    options = {
        "coordinateSystem": args.target_srid,
        "sourceSrid": args.srid,
        "selectedTypes": _split(args.types),
        "selectedLayers": _split(args.layers),
    }
    projection_text = None
    if args.prj:
        projection_text = Path(args.prj).read_text(encoding="utf-8", errors="replace")

    def report(stage: str, progress: int) -> None:
        print(f"[{progress:3d}%] {stage}")

    importer = DxfImporter(options, config, progress_callback=report)
    try:
        result = importer.import_file(dxf_path, projection_text)
    except DxfIngestError as exc:
        print(f"{dxf_path.name}: ERROR {exc}")
        return 1

    out_path = Path(args.out) if args.out else dxf_path.with_suffix(".geojson")
    out_path.write_text(
        json.dumps(result.to_geojson(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )

    stats = result.statistics
    print(
        f"{dxf_path.name}: features={stats.feature_count} "
        f"srid={stats.source_srid}({stats.srid_source})->{stats.target_srid} "
        f"hidden={stats.skipped_hidden} filtered={stats.skipped_filtered} "
        f"failed_transformations={stats.failed_transformations}"
    )
    if stats.entity_types:
        print(f"  types: {stats.entity_types}")
    if stats.errors:
        print(f"  errors: {stats.errors}")
    for warning in stats.warnings:
        print(f"  warning: {warning}")
    print(f"  -> {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

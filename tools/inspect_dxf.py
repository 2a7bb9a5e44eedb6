import argparse
import sys
from collections import Counter
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def _print_counts(title: str, counts: Counter) -> None:
    print(f"{title}:")
    for name, count in sorted(counts.items()):
        print(f"  {name:<12} {count}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Inspect DXF sections, layers, blocks and entity counts."
    )
    parser.add_argument("dxf", help="DXF文件路径")
    parser.add_argument(
        "--compare-ezdxf",
        action="store_true",
        help="同时用 ezdxf 读取模型空间并对比实体计数",
    )
    args = parser.parse_args()

    _add_backend_to_path()
    from dxf_ingest.dxf import DxfStreamReader, DxfStructureParser  # type: ignore
    from dxf_ingest.models import ImportStatistics  # type: ignore

    dxf_path = Path(args.dxf)
    if not dxf_path.exists():
        print(f"文件不存在: {dxf_path}")
        return 1

    stats = ImportStatistics()
    reader = DxfStreamReader()
    document = DxfStructureParser(stats).parse_lines(reader.iter_lines(dxf_path))

    print(f"{dxf_path.name}: version={document.version} units={document.units} encoding={reader.encoding_used}")
    print(f"sections: {document.section_names}")
    print(f"extents: {document.extents}")
    print("layers:")
    for layer in document.layers:
        state = "visible" if layer.visible else "hidden"
        print(f"  {layer.name:<20} color={layer.color:<3} {layer.line_type:<12} {state}")
    print("blocks:")
    for block in document.blocks.values():
        if block.is_layout:
            continue
        print(f"  {block.name:<20} entities={len(block.entities)} xref={block.is_xref}")

    ours = Counter(entity.kind for entity in document.iter_entities())
    _print_counts("entities", ours)
    if stats.unsupported_types:
        print(f"unsupported: {stats.unsupported_types}")
    if stats.errors:
        print(f"errors: {stats.errors}")

    if args.compare_ezdxf:
        import ezdxf

        doc = ezdxf.readfile(dxf_path)
        theirs = Counter(entity.dxftype() for entity in doc.modelspace())
        print("ezdxf comparison (ours / ezdxf):")
        for name in sorted(set(ours) | set(theirs)):
            marker = "" if ours.get(name, 0) == theirs.get(name, 0) else "  <-- diff"
            print(f"  {name:<12} {ours.get(name, 0):>6} / {theirs.get(name, 0):<6}{marker}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

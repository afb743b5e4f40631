from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from ..config import SimConfig
from ..hierarchy import CacheHierarchy
from . import viz

def _stats_rows(hierarchy: CacheHierarchy) -> List[Dict[str, Any]]:
    """Flattens per-level statistics into one row per level."""
    rows = []
    for level in hierarchy:
        row = {'level': level.name}
        row.update(level.stats.to_dict())
        rows.append(row)
    return rows

def format_stat_block(name: str, stats) -> str:
    """The per-level statistics block printed by the driver."""
    lines = [
        "",
        "----------------- Statistics -----------------",
        f"{name} Total Hit: {stats.hits} (Read: {stats.read_hits}, Write: {stats.write_hits})",
        f"{name} Total Miss: {stats.misses} (Read: {stats.read_misses}, Write: {stats.write_misses})",
        "----------------------------------------------",
    ]
    return "\n".join(lines)

def generate_report_json(hierarchy: CacheHierarchy, config: SimConfig) -> Dict[str, Any]:
    """Generates a JSON-compatible dictionary from the hierarchy statistics."""
    rows = _stats_rows(hierarchy)
    return {
        "levels": [level.config.to_dict() for level in hierarchy],
        "stats": rows,
        "hit_rates": {row['level']: f"{row['hit_rate']:.2%}" for row in rows},
        "total_accesses": rows[0]['accesses'] if rows else 0,
        "config": {
            "trace": config.trace,
            "iterations": config.iterations,
            "stride": config.stride,
            "report_dir": config.report_dir,
            "verbose": config.verbose,
        },
    }

def generate_report(hierarchy: CacheHierarchy, config: SimConfig, chart_path: Optional[str] = None):
    """Generates all report artifacts."""
    report_data = generate_report_json(hierarchy, config)
    output_dir = Path(config.report_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    with open(output_dir / "report.json", "w") as f:
        json.dump(report_data, f, indent=4)

    viz.export_stats_chart(report_data['stats'], chart_path or str(output_dir / "report.html"))

    for level in hierarchy:
        print(format_stat_block(level.name, level.stats))
    print()
    print(viz.export_stats_ascii(report_data['stats']))

    print(f"\nReports generated in {output_dir.absolute()}")
    print(f"Total Accesses: {report_data['total_accesses']}")
    return report_data

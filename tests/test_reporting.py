import json
from pathlib import Path
import pytest
from pyv_cache.config import CacheConfig, SimConfig
from pyv_cache.hierarchy import CacheHierarchy
from pyv_cache.utils.reporting import format_stat_block, generate_report, generate_report_json


@pytest.fixture
def sample_config(tmp_path: Path):
    """Provides a two-level SimConfig reporting into a temporary directory."""
    return SimConfig(
        levels=[
            CacheConfig(name="L1", capacity_bits=6, ways=2, addr_bits=16, block_bits=2),
            CacheConfig(name="L2", capacity_bits=10, ways=4, addr_bits=16, block_bits=2),
        ],
        report_dir=str(tmp_path / "report"),
    )


@pytest.fixture
def warmed_hierarchy(sample_config):
    """L1 misses on both passes over 32 blocks, L2 hits on the second pass."""
    hierarchy = CacheHierarchy.from_config(sample_config)
    for _ in range(2):
        for i in range(32):
            hierarchy.read(i * 4)
    return hierarchy


def test_generate_report_json(warmed_hierarchy, sample_config):
    report = generate_report_json(warmed_hierarchy, sample_config)

    assert report["total_accesses"] == 64
    assert [lvl["name"] for lvl in report["levels"]] == ["L1", "L2"]

    l1, l2 = report["stats"]
    assert l1["level"] == "L1"
    assert l1["misses"] == 64
    assert l2["hits"] == 32
    assert l2["misses"] == 32
    assert report["hit_rates"] == {"L1": "0.00%", "L2": "50.00%"}
    assert report["config"]["report_dir"] == sample_config.report_dir


def test_format_stat_block(warmed_hierarchy):
    block = format_stat_block("L2", warmed_hierarchy["L2"].stats)
    assert "L2 Total Hit: 32 (Read: 32, Write: 0)" in block
    assert "L2 Total Miss: 32 (Read: 32, Write: 0)" in block
    assert "Statistics" in block


def test_generate_report_full(warmed_hierarchy, sample_config, capsys):
    """Tests the main generate_report function that writes all artifacts."""
    generate_report(warmed_hierarchy, sample_config)

    report_dir = Path(sample_config.report_dir)
    data = json.loads((report_dir / "report.json").read_text())
    assert data["stats"][1]["hits"] == 32

    html_file = report_dir / "report.html"
    assert html_file.exists()
    assert "Cache Hierarchy Hit" in html_file.read_text(encoding='utf-8')

    captured = capsys.readouterr()
    assert "L1 Total Miss: 64 (Read: 64, Write: 0)" in captured.out
    assert "Cache Hierarchy Statistics (ASCII)" in captured.out
    assert "Total Accesses: 64" in captured.out


def test_generate_report_custom_chart_path(warmed_hierarchy, sample_config, tmp_path: Path):
    chart = tmp_path / "chart.html"
    generate_report(warmed_hierarchy, sample_config, chart_path=str(chart))
    assert chart.exists()
    assert not (Path(sample_config.report_dir) / "report.html").exists()

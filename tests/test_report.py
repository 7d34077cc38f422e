from datetime import datetime
from io import StringIO

import pytest
from rich.console import Console

from server_monitor.evaluator import evaluate
from server_monitor.models import (
    Connection,
    DiskUsage,
    HostInfo,
    InterfaceInfo,
    NetworkRate,
    Snapshot,
    ThresholdConfig,
)
from server_monitor.report import build_report, format_report, format_size

SNAPSHOT = Snapshot(
    timestamp=datetime(2024, 3, 1, 8, 30, 0),
    cpu_busy_percent=95.0,
    memory_used_percent=40.0,
    swap_used_percent=None,
    disks=(
        DiskUsage(
            "/",
            50.0,
            "ext4",
            "/dev/sda1",
            100 * 1024 ** 3,
            50 * 1024 ** 3,
            50 * 1024 ** 3,
        ),
        DiskUsage("/data", 75.5, "xfs"),
    ),
    network_rate=NetworkRate(2048.0, 512.0),
    load_average=(1.0, 0.5, 0.25),
    cpu_count=8,
    cpu_frequency_mhz=None,
    host=HostInfo(
        "web-1",
        "6.1.0",
        datetime(2024, 2, 28, 8, 0),
        90061.0,
        distribution="Debian GNU/Linux 12 (bookworm)",
        users_logged_in=2,
    ),
)


def line_with(text, label):
    """Return the report line starting with 'label'."""
    for line in text.splitlines():
        if line.strip().startswith(label):
            return line
    raise AssertionError(f"no line starting with {label!r} in:\n{text}")


@pytest.mark.parametrize(
    "size, expected",
    [
        (512, "512 B"),
        (2048, "2.00 KB"),
        (5 * 1024 ** 2, "5.00 MB"),
        (3 * 1024 ** 3, "3.00 GB"),
    ],
)
def test_format_size(size, expected):
    assert format_size(size) == expected


def test_plain_report():
    text = format_report(SNAPSHOT, evaluate(SNAPSHOT, ThresholdConfig()))
    assert "\033[" not in text
    assert "web-1" in line_with(text, "Hostname:")
    assert "bookworm" in line_with(text, "Distribution:")
    assert "1d 01h 01m" in line_with(text, "Uptime:")
    assert "2" in line_with(text, "Users:")
    assert "N/A" in line_with(text, "CPU Frequency:")
    assert "95.0%" in line_with(text, "Current Usage:")
    assert "Not configured" in line_with(text, "Swap Used:")
    assert "2.00 KB/s" in line_with(text, "RX Rate:")
    assert "CRITICAL" in line_with(text, "CPU Status:")
    assert "WARNING" in line_with(text, "Disk Space:")
    assert "CRITICAL" in line_with(text, "Overall:")
    assert "2024-03-01 08:30:00" in line_with(text, "Report Time:")


def test_plain_report_fits_width():
    text = format_report(
        SNAPSHOT, evaluate(SNAPSHOT, ThresholdConfig()), width=72
    )
    assert max(len(line) for line in text.splitlines()) <= 72


def test_usage_bar_tracks_value():
    text = format_report(SNAPSHOT, evaluate(SNAPSHOT, ThresholdConfig()))
    cpu = line_with(text, "Current Usage:")
    memory = line_with(text, "Used Memory:")
    assert cpu.count("━") > memory.count("━") > 0


def test_disk_table():
    text = format_report(SNAPSHOT, evaluate(SNAPSHOT, ThresholdConfig()))
    header = line_with(text, "Mount Point")
    for column in ("Size", "Used", "Avail", "Use%", "Type"):
        assert column in header
    root = line_with(text, "/ ")
    assert "100.00 GB" in root and "50.0%" in root and "ext4" in root
    data = line_with(text, "/data")
    assert "75.5%" in data and "xfs" in data and "N/A" in data


def test_colored_report():
    console = Console(
        file=StringIO(), force_terminal=True, color_system="standard"
    )
    health = evaluate(SNAPSHOT, ThresholdConfig())
    console.print(build_report(SNAPSHOT, health))
    out = console.file.getvalue()
    assert "\033[31mCRITICAL" in out
    assert "\033[32m" in out


def test_report_with_unavailable_metrics():
    snap = Snapshot(
        timestamp=datetime(2024, 3, 1),
        cpu_busy_percent=None,
        memory_used_percent=None,
        disks=None,
    )
    text = format_report(snap, evaluate(snap, ThresholdConfig()))
    assert "N/A" in line_with(text, "Current Usage:")
    assert "N/A" in line_with(text, "RX Rate:")
    assert "OK" in line_with(text, "Overall:")


def test_failed_swap_reading_is_not_shown_as_unconfigured():
    snap = SNAPSHOT._replace(unavailable=("swap",))
    text = format_report(snap, evaluate(snap, ThresholdConfig()))
    swap = line_with(text, "Swap Used:")
    assert "N/A" in swap
    assert "Not configured" not in swap


def test_detail_sections():
    snap = SNAPSHOT._replace(
        cpu_model="Example CPU @ 2.40GHz",
        per_core_percent=(10.0, 30.0),
        interfaces=(
            InterfaceInfo("eth0", True, "192.168.1.10", None, "aa:bb:cc"),
            InterfaceInfo("eth1", False),
        ),
        listening=(Connection("tcp", "0.0.0.0:22", "", "LISTEN"),),
        connections=(
            Connection(
                "tcp", "192.168.1.10:22", "192.168.1.20:50000", "ESTABLISHED"
            ),
        ),
    )
    text = format_report(snap, evaluate(snap, ThresholdConfig()), width=100)
    assert "Example CPU" in line_with(text, "CPU Model:")
    assert "30.0%" in line_with(text, "Core 1:")
    assert "UP" in line_with(text, "eth0")
    assert "192.168.1.10" in line_with(text, "eth0")
    assert "DOWN" in line_with(text, "eth1")
    assert "Listening Ports" in text
    assert "0.0.0.0:22" in text
    assert any(
        "192.168.1.20:50000" in line and "ESTABLISHED" in line
        for line in text.splitlines()
    )

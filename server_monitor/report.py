from io import StringIO

from rich import box
from rich.console import Console, Group
from rich.progress_bar import ProgressBar
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from server_monitor import settings
from server_monitor.models import HealthStatus

STATUS_STYLES = {
    HealthStatus.OK: "green",
    HealthStatus.WARNING: "bold yellow",
    HealthStatus.CRITICAL: "red",
}

HEADER_STYLE = "bold cyan"
BAR_WIDTH = 30
NOT_AVAILABLE = "N/A"

KIB = 1024
MIB = KIB * 1024
GIB = MIB * 1024


def format_size(size):
    if size >= GIB:
        return f"{size / GIB:.2f} GB"
    if size >= MIB:
        return f"{size / MIB:.2f} MB"
    if size >= KIB:
        return f"{size / KIB:.2f} KB"
    return f"{int(size)} B"


def format_duration(seconds):
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    return f"{days}d {hours:02d}h {minutes:02d}m"


def status_text(status):
    return Text(status.name, style=STATUS_STYLES[status])


def percent_text(value, status=None):
    return Text(f"{value:.1f}%", style=STATUS_STYLES.get(status, ""))


def usage_bar(value, status=None):
    style = STATUS_STYLES.get(status, "bar.complete")
    grid = Table.grid(padding=(0, 1))
    grid.add_row(
        ProgressBar(
            total=100,
            completed=value,
            width=BAR_WIDTH,
            complete_style=style,
            finished_style=style,
        ),
        percent_text(value, status),
    )
    return grid


def header(title):
    return Group(Text(""), Text(title, style=HEADER_STYLE), Rule(style="cyan"))


def fields(rows):
    """Two column label/value grid. Plain values are rendered verbatim."""
    grid = Table.grid(padding=(0, 1))
    grid.add_column(min_width=15, style="bold")
    grid.add_column()
    for label, value in rows:
        if not isinstance(value, (Text, Table)):
            value = Text(str(value))
        grid.add_row(Text(f"{label}:"), value)
    return grid


def host_section(snapshot):
    host = snapshot.host
    if host is None:
        rows = [("Hostname", NOT_AVAILABLE)]
    else:
        rows = [("Hostname", host.hostname)]
        if host.distribution:
            rows.append(("Distribution", host.distribution))
        rows += [
            ("Kernel", host.kernel),
            ("Uptime", format_duration(host.uptime_seconds)),
            ("Last Boot", host.boot_time.strftime("%Y-%m-%d %H:%M")),
        ]
        if host.users_logged_in is not None:
            rows.append(("Users", host.users_logged_in))
    return [header("System Information"), fields(rows)]


def cpu_section(snapshot, health):
    rows = []
    if snapshot.cpu_model:
        rows.append(("CPU Model", snapshot.cpu_model))
    rows.append(("CPU Cores", snapshot.cpu_count or NOT_AVAILABLE))
    if snapshot.cpu_frequency_mhz is not None:
        ghz = snapshot.cpu_frequency_mhz / 1000
        rows.append(("CPU Frequency", f"{ghz:.2f} GHz"))
    else:
        rows.append(("CPU Frequency", NOT_AVAILABLE))
    if snapshot.cpu_busy_percent is not None:
        rows.append(
            (
                "Current Usage",
                usage_bar(snapshot.cpu_busy_percent, health.per_metric["cpu"]),
            )
        )
    else:
        rows.append(("Current Usage", NOT_AVAILABLE))
    if snapshot.load_average is not None:
        load1, load5, load15 = snapshot.load_average
        rows.append(
            (
                "Load Average",
                f"{load1:.2f} (1m), {load5:.2f} (5m), {load15:.2f} (15m)",
            )
        )
    if snapshot.per_core_percent:
        for core, percent in enumerate(snapshot.per_core_percent):
            rows.append((f"Core {core}", usage_bar(percent)))
    return [header("CPU Usage"), fields(rows)]


def memory_section(snapshot, health):
    if snapshot.memory_used_percent is not None:
        memory = usage_bar(
            snapshot.memory_used_percent, health.per_metric["memory"]
        )
    else:
        memory = NOT_AVAILABLE
    if snapshot.swap_used_percent is not None:
        swap = usage_bar(snapshot.swap_used_percent, health.per_metric["swap"])
    elif "swap" in snapshot.unavailable:
        swap = NOT_AVAILABLE
    else:
        swap = "Not configured"
    rows = [("Used Memory", memory), ("Swap Used", swap)]
    return [header("Memory Usage"), fields(rows)]


def disk_section(snapshot, health):
    if snapshot.disks is None:
        return [header("Disk Usage"), Text(NOT_AVAILABLE)]
    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
    table.add_column("Mount Point", no_wrap=True)
    for name in ("Size", "Used", "Avail", "Use%"):
        table.add_column(name, justify="right", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    for disk in snapshot.disks:
        size, used, avail = (
            format_size(value) if value is not None else NOT_AVAILABLE
            for value in (disk.total_bytes, disk.used_bytes, disk.free_bytes)
        )
        table.add_row(
            Text(disk.mount_point),
            size,
            used,
            avail,
            percent_text(disk.used_percent, health.mounts[disk.mount_point]),
            Text(disk.filesystem_type),
        )
    return [header("Disk Usage"), table]


def interfaces_table(interfaces):
    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
    for name in ("Interface", "Status", "IPv4", "IPv6", "MAC"):
        table.add_column(name, no_wrap=True)
    for nic in interfaces:
        if nic.is_up is None:
            status = Text(NOT_AVAILABLE)
        elif nic.is_up:
            status = Text("UP", style=STATUS_STYLES[HealthStatus.OK])
        else:
            status = Text("DOWN", style=STATUS_STYLES[HealthStatus.CRITICAL])
        table.add_row(
            Text(nic.name),
            status,
            *(Text(value or "-") for value in (nic.ipv4, nic.ipv6, nic.mac)),
        )
    return table


def connections_table(connections):
    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False)
    for name in ("Proto", "Local Address", "Remote Address", "State"):
        table.add_column(name, no_wrap=True)
    for conn in connections:
        table.add_row(
            *(
                Text(value or "-")
                for value in (
                    conn.proto,
                    conn.local_address,
                    conn.remote_address,
                    conn.status,
                )
            )
        )
    return table


def network_section(snapshot, health):
    rate = snapshot.network_rate
    if rate is None:
        rows = [("RX Rate", NOT_AVAILABLE), ("TX Rate", NOT_AVAILABLE)]
    else:
        style = STATUS_STYLES.get(health.per_metric.get("network"), "")
        rows = [
            (
                "RX Rate",
                Text(f"{format_size(rate.rx_bytes_per_sec)}/s", style=style),
            ),
            (
                "TX Rate",
                Text(f"{format_size(rate.tx_bytes_per_sec)}/s", style=style),
            ),
        ]
    section = [header("Network Status"), fields(rows)]
    if snapshot.interfaces is not None:
        section.append(interfaces_table(snapshot.interfaces))
    if snapshot.listening is not None:
        section += [
            Text("Listening Ports", style="bold"),
            connections_table(snapshot.listening),
        ]
    if snapshot.connections is not None:
        section += [
            Text("Active Connections", style="bold"),
            connections_table(snapshot.connections),
        ]
    return section


def summary_section(snapshot, health):
    rows = [("Report Time", snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S"))]
    labels = (
        ("cpu", "CPU Status"),
        ("memory", "Memory"),
        ("swap", "Swap"),
        ("disk", "Disk Space"),
        ("network", "Network"),
    )
    for metric, label in labels:
        if metric in health.per_metric:
            rows.append((label, status_text(health.per_metric[metric])))
    rows.append(("Overall", status_text(health.overall)))
    return [header("System Health Summary"), fields(rows)]


def build_report(snapshot, health):
    """Return the report as a rich renderable."""
    sections = (
        host_section(snapshot),
        cpu_section(snapshot, health),
        memory_section(snapshot, health),
        disk_section(snapshot, health),
        network_section(snapshot, health),
        summary_section(snapshot, health),
    )
    return Group(*(part for section in sections for part in section))


def plain_console(width=settings.REPORT_WIDTH):
    return Console(
        file=StringIO(),
        width=width,
        color_system=None,
        no_color=True,
        force_terminal=False,
        highlight=False,
    )


def format_report(snapshot, health, width=settings.REPORT_WIDTH):
    """Return the report as plain text, as saved to the report file."""
    console = plain_console(width)
    console.print(build_report(snapshot, health))
    return console.file.getvalue()

import os
import socket
import tempfile
from types import SimpleNamespace

import pytest

# Keep a config file installed on the test machine out of the way.
os.environ["SERVER_MONITOR_APP_DIR"] = tempfile.mkdtemp(
    prefix="server-monitor-"
)

from server_monitor import sampler  # noqa: E402

GIB = 1024 ** 3


def partition(device, mountpoint, fstype):
    return SimpleNamespace(device=device, mountpoint=mountpoint, fstype=fstype)


def nic(bytes_recv, bytes_sent):
    return SimpleNamespace(bytes_recv=bytes_recv, bytes_sent=bytes_sent)


def address(family, value):
    return SimpleNamespace(family=family, address=value)


def endpoint(ip, port):
    return SimpleNamespace(ip=ip, port=port)


def sconn(kind, laddr, raddr=(), status="NONE", family=socket.AF_INET):
    return SimpleNamespace(
        family=family, type=kind, laddr=laddr, raddr=raddr, status=status
    )


@pytest.fixture
def fake_host(monkeypatch):
    """Replace the psutil readings used by the sampler with fixed figures."""
    host = SimpleNamespace(
        idle=25.0,
        memory=SimpleNamespace(total=8 * GIB, available=6 * GIB, free=1 * GIB),
        swap=SimpleNamespace(total=2 * GIB, used=GIB // 2),
        partitions=[
            partition("/dev/sda1", "/", "ext4"),
            partition("tmpfs", "/run", "tmpfs"),
            partition("/dev/loop0", "/snap/core/1", "squashfs"),
            partition("/dev/sdb1", "/data", "xfs"),
        ],
        usage={
            "/": SimpleNamespace(
                total=100 * GIB, used=50 * GIB, free=50 * GIB, percent=50.0
            ),
            "/data": SimpleNamespace(
                total=10 * GIB, used=9.5 * GIB, free=0.5 * GIB, percent=95.0
            ),
        },
        nics={"lo": nic(10 ** 9, 10 ** 9), "eth0": nic(1000, 500)},
        stats={
            "lo": SimpleNamespace(isup=True),
            "eth0": SimpleNamespace(isup=True),
        },
        addrs={
            "lo": [address(socket.AF_INET, "127.0.0.1")],
            "eth0": [
                address(socket.AF_INET, "192.168.1.10"),
                address(socket.AF_INET6, "fe80::1"),
                address(sampler.psu.AF_LINK, "aa:bb:cc:dd:ee:ff"),
            ],
        },
        connections=[
            sconn(
                socket.SOCK_STREAM,
                endpoint("0.0.0.0", 22),
                status=sampler.psu.CONN_LISTEN,
            ),
            sconn(
                socket.SOCK_STREAM,
                endpoint("192.168.1.10", 22),
                endpoint("192.168.1.20", 50000),
                status=sampler.psu.CONN_ESTABLISHED,
            ),
            sconn(socket.SOCK_DGRAM, endpoint("0.0.0.0", 53)),
        ],
        per_core=[10.0, 30.0],
    )

    def disk_usage(path):
        if path not in host.usage:
            raise PermissionError(path)
        return host.usage[path]

    monkeypatch.setattr(
        sampler.psu,
        "cpu_times_percent",
        lambda interval=None: SimpleNamespace(idle=host.idle),
    )
    monkeypatch.setattr(sampler.psu, "virtual_memory", lambda: host.memory)
    monkeypatch.setattr(sampler.psu, "swap_memory", lambda: host.swap)
    monkeypatch.setattr(
        sampler.psu, "disk_partitions", lambda all=False: host.partitions
    )
    monkeypatch.setattr(sampler.psu, "disk_usage", disk_usage)
    monkeypatch.setattr(
        sampler.psu, "net_io_counters", lambda pernic=False: dict(host.nics)
    )
    monkeypatch.setattr(sampler.psu, "getloadavg", lambda: (0.5, 0.25, 0.1))
    monkeypatch.setattr(sampler.psu, "cpu_count", lambda: 4)
    monkeypatch.setattr(
        sampler.psu, "cpu_freq", lambda: SimpleNamespace(current=2400.0)
    )
    monkeypatch.setattr(sampler.psu, "boot_time", lambda: 1700000000.0)
    monkeypatch.setattr(sampler.psu, "net_if_stats", lambda: dict(host.stats))
    monkeypatch.setattr(sampler.psu, "net_if_addrs", lambda: dict(host.addrs))
    monkeypatch.setattr(
        sampler.psu, "net_connections", lambda kind="inet": host.connections
    )
    monkeypatch.setattr(
        sampler.psu,
        "cpu_percent",
        lambda interval=None, percpu=False: list(host.per_core),
    )
    monkeypatch.setattr(
        sampler.psu, "users", lambda: [SimpleNamespace(name="admin")]
    )
    return host

"""
Host readings and the Sampler that bundles them into a Snapshot.

Every reading is taken independently. A reading that cannot be taken raises
MetricUnavailable, which the Sampler records as an absent field.
"""
import platform
import socket
import time
from datetime import datetime

import psutil as psu

from server_monitor import log, settings
from server_monitor.errors import MetricUnavailable
from server_monitor.models import (
    Connection,
    DiskUsage,
    HostInfo,
    InterfaceInfo,
    NetworkCounters,
    NetworkRate,
    Snapshot,
)

LOGGER = log.get_logger(__name__)

LOOPBACK_INTERFACES = ("lo", "lo0")


class DiskFilter:
    """
    Default predicate deciding which partitions are reported.

    Pseudo and container-internal filesystems are dropped, by filesystem
    type, by device prefix and by mount point prefix.
    """

    def __init__(
        self,
        exclude_fstypes=settings.EXCLUDED_FSTYPES,
        exclude_devices=settings.EXCLUDED_DEVICES,
        exclude_mountpoints=settings.EXCLUDED_MOUNTPOINTS,
    ):
        self.exclude_fstypes = frozenset(exclude_fstypes)
        self.exclude_devices = tuple(exclude_devices)
        self.exclude_mountpoints = tuple(exclude_mountpoints)

    def __call__(self, partition):
        if partition.fstype in self.exclude_fstypes:
            return False
        if self.exclude_devices and partition.device.startswith(
            self.exclude_devices
        ):
            return False
        for prefix in self.exclude_mountpoints:
            prefix = prefix.rstrip("/")
            mountpoint = partition.mountpoint
            if mountpoint == prefix or mountpoint.startswith(prefix + "/"):
                return False
        return True


class InterfaceFilter:
    """
    Default predicate deciding which interfaces count towards the network
    rate when no single interface is configured.

    Loopback is always dropped. Interfaces whose name starts with one of
    'exclude_prefixes' (bridges, veth pairs, container networks) are dropped,
    and so are interfaces reported down unless 'include_down' is set.
    """

    def __init__(
        self, exclude_prefixes=settings.EXCLUDED_INTERFACES, include_down=False
    ):
        self.exclude_prefixes = tuple(exclude_prefixes)
        self.include_down = include_down

    def excludes_name(self, name):
        if name in LOOPBACK_INTERFACES:
            return True
        return bool(self.exclude_prefixes) and name.startswith(
            self.exclude_prefixes
        )

    def __call__(self, name, stats=None):
        if self.excludes_name(name):
            return False
        if stats is not None and not stats.isup and not self.include_down:
            return False
        return True


def read_cpu_busy_percent(interval=settings.CPU_INTERVAL_SEC):
    """
    Return 100 minus the idle percentage measured over 'interval' seconds.

    The figure is indicative of the load around the time of the sample, not
    of the whole period since the previous sample.
    """
    try:
        times = psu.cpu_times_percent(interval=interval)
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("cpu", exc) from exc
    busy = 100.0 - times.idle
    return min(max(busy, 0.0), 100.0)


def read_memory_used_percent():
    try:
        mem = psu.virtual_memory()
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("memory", exc) from exc
    if not mem.total:
        raise MetricUnavailable("memory", "total memory reported as 0")
    return (mem.total - mem.available) / mem.total * 100


def read_swap_used_percent():
    """Return None when no swap is configured."""
    try:
        swap = psu.swap_memory()
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("swap", exc) from exc
    if swap.total == 0:
        return None
    return swap.used / swap.total * 100


def read_disks(predicate):
    try:
        partitions = psu.disk_partitions(all=False)
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("disks", exc) from exc

    disks = []
    seen = set()
    for part in partitions:
        if part.mountpoint in seen or not predicate(part):
            continue
        seen.add(part.mountpoint)
        try:
            usage = psu.disk_usage(part.mountpoint)
        except OSError as exc:
            LOGGER.debug(f"Skipping mount '{part.mountpoint}': {exc}")
            continue
        disks.append(
            DiskUsage(
                mount_point=part.mountpoint,
                used_percent=usage.percent,
                filesystem_type=part.fstype,
                device=part.device,
                total_bytes=usage.total,
                used_bytes=usage.used,
                free_bytes=usage.free,
            )
        )
    return tuple(disks)


def read_interface_stats():
    try:
        return psu.net_if_stats()
    except (OSError, RuntimeError) as exc:
        LOGGER.debug(f"Interface status unavailable: {exc}")
        return {}


def read_network_counters(interface=None, interface_filter=None):
    """
    Return cumulative receive and transmit byte counters.

    Without an interface name, the interfaces accepted by 'interface_filter'
    are summed.
    """
    try:
        per_nic = psu.net_io_counters(pernic=True)
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("network", exc) from exc
    taken_at = time.monotonic()

    if interface is not None:
        if interface not in per_nic:
            raise MetricUnavailable("network", f"no interface '{interface}'")
        nics = [per_nic[interface]]
    else:
        if interface_filter is None:
            interface_filter = InterfaceFilter()
        stats = read_interface_stats()
        nics = [
            counters
            for name, counters in per_nic.items()
            if interface_filter(name, stats.get(name))
        ]
    return NetworkCounters(
        rx_bytes=sum(nic.bytes_recv for nic in nics),
        tx_bytes=sum(nic.bytes_sent for nic in nics),
        taken_at=taken_at,
    )


def counter_delta(old, new, name):
    delta = new - old
    if delta < 0:
        LOGGER.info(f"{name} counter went from {old} to {new}, assuming reset")
        return 0
    return delta


def network_rate(old, new):
    elapsed = new.taken_at - old.taken_at
    if elapsed <= 0:
        raise MetricUnavailable(
            "network", f"no time elapsed between readings ({elapsed}s)"
        )
    return NetworkRate(
        rx_bytes_per_sec=counter_delta(old.rx_bytes, new.rx_bytes, "rx")
        / elapsed,
        tx_bytes_per_sec=counter_delta(old.tx_bytes, new.tx_bytes, "tx")
        / elapsed,
    )


def read_load_average():
    try:
        return psu.getloadavg()
    except (OSError, AttributeError) as exc:
        raise MetricUnavailable("load_average", exc) from exc


def read_cpu_frequency_mhz():
    try:
        freq = psu.cpu_freq()
    except (OSError, AttributeError, NotImplementedError) as exc:
        raise MetricUnavailable("cpu_frequency", exc) from exc
    if freq is None or not freq.current:
        raise MetricUnavailable("cpu_frequency", "no frequency reported")
    return freq.current


def read_cpu_model(cpuinfo="/proc/cpuinfo"):
    try:
        with open(cpuinfo) as f:
            for line in f:
                key, _, value = line.partition(":")
                if key.strip() == "model name" and value.strip():
                    return value.strip()
    except OSError as exc:
        LOGGER.debug(f"Cannot read {cpuinfo}: {exc}")
    model = platform.processor()
    if not model:
        raise MetricUnavailable("cpu_model", "no model reported")
    return model


def read_per_core_percent(interval=settings.CPU_INTERVAL_SEC):
    try:
        return tuple(psu.cpu_percent(interval=interval, percpu=True))
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("per_core", exc) from exc


def read_distribution():
    try:
        release = platform.freedesktop_os_release()
    except (OSError, AttributeError):
        return None
    return release.get("PRETTY_NAME") or release.get("NAME")


def read_users_logged_in():
    try:
        return len(psu.users())
    except (OSError, RuntimeError) as exc:
        LOGGER.debug(f"Cannot list users: {exc}")
        return None


def read_host_info():
    try:
        boot_time = psu.boot_time()
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("host", exc) from exc
    uname = platform.uname()
    return HostInfo(
        hostname=uname.node,
        kernel=uname.release,
        boot_time=datetime.fromtimestamp(boot_time),
        uptime_seconds=max(time.time() - boot_time, 0.0),
        distribution=read_distribution(),
        users_logged_in=read_users_logged_in(),
    )


def read_interfaces(interface_filter):
    """
    Return name, status and addresses of every interface whose name passes
    'interface_filter'. Down interfaces are listed with is_up False.
    """
    try:
        addrs = psu.net_if_addrs()
    except (OSError, RuntimeError) as exc:
        raise MetricUnavailable("interfaces", exc) from exc
    stats = read_interface_stats()

    interfaces = []
    for name, name_addrs in addrs.items():
        if interface_filter.excludes_name(name):
            continue
        found = {}
        for addr in name_addrs:
            found.setdefault(addr.family, addr.address)
        nic_stats = stats.get(name)
        interfaces.append(
            InterfaceInfo(
                name=name,
                is_up=None if nic_stats is None else nic_stats.isup,
                ipv4=found.get(socket.AF_INET),
                ipv6=found.get(socket.AF_INET6),
                mac=found.get(psu.AF_LINK),
            )
        )
    return tuple(interfaces)


def format_address(addr):
    if not addr:
        return ""
    return f"{addr.ip}:{addr.port}"


def read_connections(limit=settings.CONNECTIONS_SHOWN):
    """
    Return the listening sockets and up to 'limit' established TCP
    connections.

    UDP sockets without a remote end are counted as listening.
    """
    try:
        conns = psu.net_connections(kind="inet")
    except (psu.AccessDenied, OSError) as exc:
        raise MetricUnavailable("connections", exc) from exc

    listening = []
    established = []
    for conn in conns:
        proto = "tcp" if conn.type == socket.SOCK_STREAM else "udp"
        if conn.family == socket.AF_INET6:
            proto += "6"
        connection = Connection(
            proto=proto,
            local_address=format_address(conn.laddr),
            remote_address=format_address(conn.raddr),
            status=conn.status,
        )
        if conn.status == psu.CONN_LISTEN or (
            proto.startswith("udp") and not conn.raddr
        ):
            listening.append(connection)
        elif conn.status == psu.CONN_ESTABLISHED:
            established.append(connection)
    listening.sort(key=lambda c: (c.proto, c.local_address))
    return tuple(listening), tuple(established[:limit])


class Sampler:
    """
    Takes snapshots of the host.

    'detail' adds the CPU model and per-core usage, 'network_detail' adds
    interface addresses and socket listings. Both are informational and are
    never evaluated.
    """

    def __init__(
        self,
        network_interval=settings.NETWORK_INTERVAL_SEC,
        cpu_interval=settings.CPU_INTERVAL_SEC,
        disk_filter=None,
        interface=None,
        interface_filter=None,
        detail=False,
        network_detail=False,
        sleep=time.sleep,
    ):
        self.network_interval = network_interval
        self.cpu_interval = cpu_interval
        if disk_filter is None:
            disk_filter = DiskFilter()
        self.disk_filter = disk_filter
        self.interface = interface
        if interface_filter is None:
            interface_filter = InterfaceFilter()
        self.interface_filter = interface_filter
        self.detail = detail
        self.network_detail = network_detail
        self.sleep = sleep

    @classmethod
    def from_config(cls, config, detail=False, network_detail=False):
        return cls(
            network_interval=config["network_interval"],
            cpu_interval=config["cpu_interval"],
            disk_filter=DiskFilter(
                exclude_fstypes=config["exclude_fstypes"],
                exclude_devices=config["exclude_devices"],
                exclude_mountpoints=config["exclude_mountpoints"],
            ),
            interface=config["network_interface"],
            interface_filter=InterfaceFilter(
                exclude_prefixes=config["exclude_interfaces"],
                include_down=config["include_down_interfaces"],
            ),
            detail=detail,
            network_detail=network_detail,
        )

    def _optional(self, unavailable, read, *args):
        try:
            return read(*args)
        except MetricUnavailable as exc:
            LOGGER.warning(str(exc))
            unavailable.append(exc.metric)
            return None

    def _read_counters(self, unavailable):
        return self._optional(
            unavailable,
            read_network_counters,
            self.interface,
            self.interface_filter,
        )

    def sample(self, previous_counters=None):
        """
        Take one snapshot of the host.

        Returns the snapshot and the raw network counters to pass back on the
        next call. Without previous counters, two readings are taken
        'network_interval' seconds apart.
        """
        unavailable = []
        if previous_counters is None:
            previous_counters = self._read_counters(unavailable)
            if previous_counters is not None:
                self.sleep(self.network_interval)

        cpu_busy = self._optional(
            unavailable, read_cpu_busy_percent, self.cpu_interval
        )
        memory_used = self._optional(unavailable, read_memory_used_percent)
        swap_used = self._optional(unavailable, read_swap_used_percent)
        disks = self._optional(unavailable, read_disks, self.disk_filter)

        counters = self._read_counters(unavailable)
        rate = None
        if counters is not None and previous_counters is not None:
            rate = self._optional(
                unavailable, network_rate, previous_counters, counters
            )

        cpu_model = per_core = None
        if self.detail:
            cpu_model = self._optional(unavailable, read_cpu_model)
            per_core = self._optional(
                unavailable, read_per_core_percent, self.cpu_interval
            )

        interfaces = connections = None
        listening = established = None
        if self.network_detail:
            interfaces = self._optional(
                unavailable, read_interfaces, self.interface_filter
            )
            connections = self._optional(unavailable, read_connections)
            if connections is not None:
                listening, established = connections

        snapshot = Snapshot(
            timestamp=datetime.now(),
            cpu_busy_percent=cpu_busy,
            memory_used_percent=memory_used,
            swap_used_percent=swap_used,
            disks=disks,
            network_rate=rate,
            load_average=self._optional(unavailable, read_load_average),
            cpu_count=psu.cpu_count(),
            cpu_frequency_mhz=self._optional(
                unavailable, read_cpu_frequency_mhz
            ),
            host=self._optional(unavailable, read_host_info),
            cpu_model=cpu_model,
            per_core_percent=per_core,
            interfaces=interfaces,
            connections=established,
            listening=listening,
            unavailable=tuple(dict.fromkeys(unavailable)),
        )
        LOGGER.debug(f"Sampled {snapshot}")
        return snapshot, counters

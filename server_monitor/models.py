import enum
import types
from collections import namedtuple

from server_monitor import settings
from server_monitor.errors import InvalidThresholdConfig

SNAPSHOT_FIELD_NAMES = [
    "timestamp",
    "cpu_busy_percent",
    "memory_used_percent",
    "swap_used_percent",
    "disks",
    "network_rate",
    "load_average",
    "cpu_count",
    "cpu_frequency_mhz",
    "host",
    "cpu_model",
    "per_core_percent",
    "interfaces",
    "connections",
    "listening",
    "unavailable",
]

# Only timestamp, cpu and memory are required, so that a snapshot can be built
# by hand from the figures that matter for evaluation. 'unavailable' names
# the readings that failed, to tell them apart from readings that are absent
# on this host, such as swap.
Snapshot = namedtuple(
    "Snapshot",
    SNAPSHOT_FIELD_NAMES,
    defaults=(None, (), None) + (None,) * 9 + ((),),
)

DISK_USAGE_FIELD_NAMES = [
    "mount_point",
    "used_percent",
    "filesystem_type",
    "device",
    "total_bytes",
    "used_bytes",
    "free_bytes",
]

DiskUsage = namedtuple(
    "DiskUsage",
    DISK_USAGE_FIELD_NAMES,
    defaults=("", "", None, None, None),
)

NetworkCounters = namedtuple(
    "NetworkCounters", ["rx_bytes", "tx_bytes", "taken_at"]
)

NetworkRate = namedtuple(
    "NetworkRate", ["rx_bytes_per_sec", "tx_bytes_per_sec"]
)

HostInfo = namedtuple(
    "HostInfo",
    [
        "hostname",
        "kernel",
        "boot_time",
        "uptime_seconds",
        "distribution",
        "users_logged_in",
    ],
    defaults=(None, None),
)

InterfaceInfo = namedtuple(
    "InterfaceInfo",
    ["name", "is_up", "ipv4", "ipv6", "mac"],
    defaults=(None, None, None),
)

Connection = namedtuple(
    "Connection", ["proto", "local_address", "remote_address", "status"]
)


class HealthStatus(enum.IntEnum):
    OK = 0
    WARNING = 1
    CRITICAL = 2


class Threshold(namedtuple("Threshold", ["warning", "critical"])):
    """
    Warning and critical boundaries of a percentage metric.

    Both boundaries are exclusive: a value equal to 'critical' is still a
    warning and a value equal to 'warning' is still OK.
    """

    __slots__ = ()

    def __new__(
        cls,
        warning=settings.PERCENT_WARNING,
        critical=settings.PERCENT_CRITICAL,
    ):
        if not 0 <= warning < critical <= 100:
            raise InvalidThresholdConfig(
                f"expected 0 <= warning < critical <= 100, "
                f"got warning={warning}, critical={critical}"
            )
        return super().__new__(cls, float(warning), float(critical))


class ThresholdConfig(
    namedtuple(
        "ThresholdConfig", ["cpu", "memory", "swap", "disk", "network_warning"]
    )
):
    """
    Thresholds for every metric kind. The network threshold is an absolute
    byte rate with a single warning tier, None turns network evaluation off.
    """

    __slots__ = ()

    def __new__(
        cls,
        cpu=None,
        memory=None,
        swap=None,
        disk=None,
        network_warning=settings.NETWORK_WARNING_BYTES_PER_SEC,
    ):
        thresholds = [cpu, memory, swap, disk]
        for i, threshold in enumerate(thresholds):
            if threshold is None:
                thresholds[i] = Threshold()
            elif not isinstance(threshold, Threshold):
                thresholds[i] = Threshold(*threshold)
        if network_warning is not None and network_warning < 0:
            raise InvalidThresholdConfig(
                f"network warning must not be negative, got {network_warning}"
            )
        return super().__new__(cls, *thresholds, network_warning)


class HealthReport(namedtuple("HealthReport", ["per_metric", "mounts"])):
    __slots__ = ()

    def __new__(cls, per_metric, mounts):
        return super().__new__(
            cls,
            types.MappingProxyType(dict(per_metric)),
            types.MappingProxyType(dict(mounts)),
        )

    @property
    def overall(self):
        return max(self.per_metric.values(), default=HealthStatus.OK)

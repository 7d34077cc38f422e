import os

APP_DIR = os.getenv("SERVER_MONITOR_APP_DIR", "/etc/server-monitor")
CONFIG_FILE = os.path.join(
    APP_DIR, os.getenv("SERVER_MONITOR_CONFIG_FILE", "server-monitor.ini")
)
LOG_FILE_NAME = "server-monitor.log"

REFRESH_INTERVAL_SEC = 5
NETWORK_INTERVAL_SEC = 1
CPU_INTERVAL_SEC = 0.5

PERCENT_WARNING = 70.0
PERCENT_CRITICAL = 90.0
NETWORK_WARNING_BYTES_PER_SEC = 1000000

EXCLUDED_FSTYPES = (
    "tmpfs",
    "devtmpfs",
    "overlay",
    "squashfs",
    "ramfs",
    "proc",
    "sysfs",
    "devpts",
    "cgroup",
    "cgroup2",
    "autofs",
    "nsfs",
    "efivarfs",
    "fuse.lxcfs",
)
EXCLUDED_DEVICES = ("/dev/loop", "udev")
EXCLUDED_MOUNTPOINTS = ("/var/lib/docker", "/run/containerd", "/snap")

# Interface name prefixes of bridges and virtual links, whose traffic is
# already counted on a physical interface.
EXCLUDED_INTERFACES = (
    "lo",
    "veth",
    "docker",
    "br-",
    "virbr",
    "cni",
    "flannel",
)

REPORT_WIDTH = 80
CONNECTIONS_SHOWN = 10

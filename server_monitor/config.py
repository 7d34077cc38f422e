from configparser import ConfigParser

from server_monitor import settings
from server_monitor.errors import InvalidConfig, InvalidThresholdConfig
from server_monitor.models import Threshold, ThresholdConfig

METRIC_KINDS = ("cpu", "memory", "swap", "disk")


def split_list(value):
    return tuple(item.strip() for item in value.split(",") if item.strip())


def get_float(section, key, fallback, error=InvalidConfig):
    value = section.get(key, "").strip()
    if value == "":
        return fallback
    try:
        return float(value)
    except ValueError:
        raise error(f"'{key}' must be a number, got '{value}'") from None


def get_interval(section, key, fallback, allow_zero=False):
    value = get_float(section, key, fallback)
    if value < 0 or (value == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise InvalidConfig(f"'{key}' must be {bound}, got {value}")
    return value


def parse_thresholds(section):
    thresholds = {
        kind: Threshold(
            get_float(
                section,
                f"{kind}_warning",
                settings.PERCENT_WARNING,
                InvalidThresholdConfig,
            ),
            get_float(
                section,
                f"{kind}_critical",
                settings.PERCENT_CRITICAL,
                InvalidThresholdConfig,
            ),
        )
        for kind in METRIC_KINDS
    }
    if "network_warning" in section:
        network_warning = get_float(
            section, "network_warning", None, InvalidThresholdConfig
        )
    else:
        network_warning = settings.NETWORK_WARNING_BYTES_PER_SEC
    return ThresholdConfig(network_warning=network_warning, **thresholds)


def get_section(config, name):
    return config[name] if config.has_section(name) else {}


def parse_config(config):
    default = get_section(config, "default")
    disks = get_section(config, "disks")
    network = get_section(config, "network")
    return {
        "log_dir": default.get("log_dir", "").strip(),
        "log_level": default.get("log_level", "info"),
        "refresh_interval": get_interval(
            default, "refresh_interval", settings.REFRESH_INTERVAL_SEC
        ),
        "network_interval": get_interval(
            default,
            "network_interval",
            settings.NETWORK_INTERVAL_SEC,
            allow_zero=True,
        ),
        "cpu_interval": get_interval(
            default, "cpu_interval", settings.CPU_INTERVAL_SEC, allow_zero=True
        ),
        "network_interface": default.get("network_interface", "").strip()
        or None,
        "thresholds": parse_thresholds(get_section(config, "thresholds")),
        "exclude_fstypes": split_list(
            disks.get("exclude_fstypes", ",".join(settings.EXCLUDED_FSTYPES))
        ),
        "exclude_devices": split_list(
            disks.get("exclude_devices", ",".join(settings.EXCLUDED_DEVICES))
        ),
        "exclude_mountpoints": split_list(
            disks.get(
                "exclude_mountpoints", ",".join(settings.EXCLUDED_MOUNTPOINTS)
            )
        ),
        "exclude_interfaces": split_list(
            network.get(
                "exclude_interfaces", ",".join(settings.EXCLUDED_INTERFACES)
            )
        ),
        "include_down_interfaces": network.get(
            "include_down_interfaces", "no"
        ).strip().lower()
        in ("1", "yes", "true", "on"),
    }


def get_config(config_file=settings.CONFIG_FILE):
    config = ConfigParser(interpolation=None)
    config.read(config_file)
    return parse_config(config)


config = get_config()

"""
Classification of a Snapshot against a ThresholdConfig.

Pure functions: the same snapshot and thresholds always give the same report.
"""
from server_monitor.models import HealthReport, HealthStatus


def classify(value, threshold):
    if value > threshold.critical:
        return HealthStatus.CRITICAL
    if value > threshold.warning:
        return HealthStatus.WARNING
    return HealthStatus.OK


def classify_network(rate, warning):
    # Bandwidth is advisory only, it never reaches CRITICAL.
    busiest = max(rate.rx_bytes_per_sec, rate.tx_bytes_per_sec)
    if busiest > warning:
        return HealthStatus.WARNING
    return HealthStatus.OK


def evaluate(snapshot, config):
    per_metric = {}
    if snapshot.cpu_busy_percent is not None:
        per_metric["cpu"] = classify(snapshot.cpu_busy_percent, config.cpu)
    if snapshot.memory_used_percent is not None:
        per_metric["memory"] = classify(
            snapshot.memory_used_percent, config.memory
        )
    if snapshot.swap_used_percent is not None:
        per_metric["swap"] = classify(snapshot.swap_used_percent, config.swap)

    mounts = {
        disk.mount_point: classify(disk.used_percent, config.disk)
        for disk in snapshot.disks or ()
    }
    if mounts:
        per_metric["disk"] = max(mounts.values())

    rate = snapshot.network_rate
    if rate is not None and config.network_warning is not None:
        per_metric["network"] = classify_network(rate, config.network_warning)

    return HealthReport(per_metric=per_metric, mounts=mounts)

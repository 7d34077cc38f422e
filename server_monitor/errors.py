class ServerMonitorError(Exception):
    pass


class MetricUnavailable(ServerMonitorError):
    """
    A single host reading could not be taken. The sampler turns this into an
    absent field of the snapshot, it never aborts a sample.
    """

    def __init__(self, metric, reason):
        super().__init__(f"{metric} unavailable: {reason}")
        self.metric = metric
        self.reason = reason


class InvalidConfig(ServerMonitorError):
    """Raised while loading configuration, before any sampling takes place."""


class InvalidThresholdConfig(InvalidConfig):
    pass

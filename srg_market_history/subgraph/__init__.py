from enum import Enum


class WindowSize(Enum):
    HOUR = 3600
    DAY = 86400


class TransferRole(Enum):
    FROM = "from"
    TO = "to"


class MetricKind(Enum):
    PRICE = "price"
    VOLUME = "volume"
    LIQUIDITY = "liquidity"

    @property
    def window_size(self) -> WindowSize:
        """Bucket width used for this metric's series"""
        if self is MetricKind.PRICE:
            return WindowSize.HOUR
        return WindowSize.DAY

    @property
    def ticker_field(self) -> str:
        """Ticker entity field holding the raw value"""
        if self is MetricKind.PRICE:
            return "last_price"
        elif self is MetricKind.VOLUME:
            return "target_volume"
        return "liquidity_in_usd"

    @property
    def output_field(self) -> str:
        """Key of the value in the response points"""
        if self is MetricKind.VOLUME:
            return "volume_24hr"
        return self.value


class SubgraphError(RuntimeError):
    """The subgraph could not answer a query"""


class SubgraphTransportError(SubgraphError):
    """HTTP or connection level failure"""


class SubgraphTimeoutError(SubgraphTransportError):
    pass


class SubgraphQueryError(SubgraphError):
    """The GraphQL response carried an `errors` payload"""


class SubgraphResponseError(SubgraphError):
    """The response did not have the expected shape"""


class InvalidTokenAddressError(ValueError):
    pass


class InvalidBlockNumberError(ValueError):
    pass

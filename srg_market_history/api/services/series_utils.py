from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from srg_market_history.subgraph import MetricKind
from srg_market_history.subgraph.models import WindowResult


_MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_timestamp_label(timestamp: int) -> str:
    """Render unix seconds as a UTC label such as 'Apr 29, 2021, 9:00:00 AM'

    Month names come from a fixed table rather than the locale, so the label
    does not depend on the host's locale or timezone.

    Args:
        timestamp: Unix timestamp in seconds

    Returns:
        Human-readable UTC label
    """
    moment = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    month = _MONTH_ABBREVIATIONS[moment.month - 1]
    return f"{month} {moment.day}, {moment.year}, {hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}"


def assemble_series(results: Iterable[WindowResult], metric: MetricKind) -> List[Dict[str, Any]]:
    """Format resolved windows for the response, oldest first

    Failed windows are dropped here and nowhere earlier.

    Args:
        results: Window results from the point resolver
        metric: Metric the results belong to, decides the value key

    Returns:
        List of point dictionaries
    """
    points = [result.point for result in results if result.ok]
    points.sort(key=lambda point: point.window_key)

    return [
        {
            "window_key": point.window_key,
            "timestamp": format_timestamp_label(point.window_key),
            "block_number": point.block_number,
            metric.output_field: point.value,
        }
        for point in points
    ]

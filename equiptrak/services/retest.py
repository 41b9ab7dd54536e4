from datetime import date, datetime, timedelta

RETEST_INTERVAL = timedelta(days=364)


def _as_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Service date is empty")
        return date.fromisoformat(cleaned[:10])
    raise TypeError(f"Unsupported service date: {value!r}")


def compute_retest_date(service_date: date | datetime | str) -> date:
    """Retest is due 364 days after the service, fixed at creation time."""
    return _as_date(service_date) + RETEST_INTERVAL

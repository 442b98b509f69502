"""Human-friendly message timestamps."""

from datetime import datetime, timedelta


def format_message_time(value: datetime, now: datetime | None = None) -> str:
    """Render a timestamp the way the conversation view shows it.

    Today -> ``14:05``, yesterday -> ``Yesterday``, older -> ``Mar 4``.
    Aware timestamps are converted to the local zone of ``now``.
    """
    if now is None:
        now = datetime.now().astimezone() if value.tzinfo else datetime.now()
    if value.tzinfo is not None and now.tzinfo is not None:
        value = value.astimezone(now.tzinfo)

    today = now.date()
    if value.date() >= today:
        return value.strftime("%H:%M")
    if value.date() >= today - timedelta(days=1):
        return "Yesterday"
    return f"{value.strftime('%b')} {value.day}"

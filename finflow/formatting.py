from datetime import date


def format_currency(amount: float) -> str:
    """Dollar formatting with thousands separators, e.g. -$1,234.50."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_signed(amount: float, tx_type: str) -> str:
    prefix = "+" if tx_type == "income" else "-"
    return f"{prefix}{format_currency(amount)}"


def day_label(day: date) -> str:
    # "Jan 5", no zero padding
    return f"{day.strftime('%b')} {day.day}"


def period_label(period) -> str:
    if period == "all":
        return "All Time"
    if period == "month":
        return "This Month"
    return f"{period} Days"

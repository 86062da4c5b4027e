"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta


def add_months(from_date: date, months: int) -> date:
    """
    Add calendar months, clamping to the last day of a shorter target month.

    Jan 31 + 1 month -> Feb 28 (Feb 29 in leap years), Jan 31 + 2 months -> Mar 31.
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(from_date.day, last_day))


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)

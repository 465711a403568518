from .link_stats import LinkClick, LinkCountryStat, LinkDailyCountryStat, LinkDailyStat
from .short_link import ShortLink
from .user import User

__all__ = [
    "User",
    "ShortLink",
    "LinkCountryStat",
    "LinkDailyStat",
    "LinkDailyCountryStat",
    "LinkClick",
]

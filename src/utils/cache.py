from fastapi import Request
from fastapi_cache import FastAPICache

from src.core.config import settings


def link_stats_cache_key_builder(
    func,
    namespace: str = "",
    request: Request = None,
    *args,
    **kwargs,
) -> str:
    prefix = FastAPICache.get_prefix()
    short_id = request.path_params.get("short_id")
    days = request.query_params.get("days") or settings.STATS_DEFAULT_DAYS
    return f"{prefix}:link_stats:{short_id}:{days}"


"""
Классификация посетителя gate-страницы: устройство/браузер/ОС по User-Agent
и геолокация по IP через локальную офлайн базу.
"""

import ipaddress
import re
from typing import Optional, Protocol

import geoip2.database
import geoip2.errors

from src.schemas.click import SClientInfo, SGeoLocation, UNKNOWN
from src.utils.logger import get_logger

logger = get_logger(__name__)

MOBILE_RE = re.compile(r"mobile|android|iphone|ipod|blackberry|windows phone")
TABLET_RE = re.compile(r"ipad|tablet")

# first match wins; Chrome/Edge/Safari/Opera user agents share substrings
BROWSER_RULES = (
    ("Firefox", ("firefox",)),
    ("Edge", ("edg",)),
    ("Chrome", ("chrome",)),
    ("Safari", ("safari",)),
    ("Opera", ("opera", "opr")),
)

OS_RULES = (
    ("Windows", ("windows",)),
    ("macOS", ("mac",)),
    ("Linux", ("linux",)),
    ("Android", ("android",)),
    ("iOS", ("iphone", "ipad")),
)

IPV4_MAPPED_PREFIX = "::ffff:"


def _first_match(ua: str, rules) -> str:
    for name, needles in rules:
        if any(needle in ua for needle in needles):
            return name
    return "unknown"


def parse_user_agent(user_agent: Optional[str]) -> SClientInfo:
    """
    Определить категорию устройства, браузер и ОС.

    Пустой или отсутствующий User-Agent даёт unknown во всех полях
    (в том числе device, а не desktop).
    """
    if not user_agent:
        return SClientInfo(device="unknown", browser="unknown", os="unknown")

    ua = user_agent.lower()

    device = "desktop"
    if MOBILE_RE.search(ua):
        device = "mobile"
    elif TABLET_RE.search(ua):
        device = "tablet"

    return SClientInfo(
        device=device,
        browser=_first_match(ua, BROWSER_RULES),
        os=_first_match(ua, OS_RULES),
    )


def client_ip_from_headers(forwarded_for: Optional[str], remote_addr: Optional[str]) -> Optional[str]:
    """Первый адрес из цепочки X-Forwarded-For, иначе адрес сокета."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return remote_addr or None


def normalize_ip(ip: Optional[str]) -> Optional[str]:
    if not ip:
        return None
    ip = ip.strip()
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        ip = ip[len(IPV4_MAPPED_PREFIX):]
    return ip or None


def is_local_address(ip: str) -> bool:
    """Loopback и частные диапазоны (RFC 1918) не ищутся в гео базе."""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        # not an address at all; nothing to look up either
        return True
    return address.is_loopback or address.is_private


class GeoLocator(Protocol):
    def lookup(self, ip: str) -> Optional[SGeoLocation]:
        ...


class NullGeoLocator:
    """Используется, когда гео база не настроена: все адреса неизвестны."""

    def lookup(self, ip: str) -> Optional[SGeoLocation]:
        return None


class MaxMindGeoLocator:
    """Офлайн IP -> {country, city, region} по базе GeoLite2/GeoIP2 City."""

    def __init__(self, database_path: str):
        self.database_path = database_path
        self._reader = geoip2.database.Reader(database_path)
        logger.info(f"GeoIP database loaded from {database_path}")

    def lookup(self, ip: str) -> Optional[SGeoLocation]:
        try:
            response = self._reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return None

        subdivision = response.subdivisions.most_specific
        return SGeoLocation(
            country=response.country.iso_code or UNKNOWN,
            city=response.city.name or UNKNOWN,
            region=subdivision.iso_code or subdivision.name or UNKNOWN,
        )

    def close(self) -> None:
        self._reader.close()


def resolve_geo(ip: Optional[str], locator: GeoLocator) -> SGeoLocation:
    """
    Геолокация по IP. Никогда не падает: любой промах или ошибка
    базы даёт {Unknown, Unknown, Unknown}.
    """
    ip = normalize_ip(ip)
    if ip is None or is_local_address(ip):
        return SGeoLocation()

    try:
        location = locator.lookup(ip)
    except Exception as e:
        logger.warning(f"Geo lookup failed for {ip}: {e}")
        return SGeoLocation()

    return location or SGeoLocation()

import asyncio
import httpx
from countryinfo import CountryInfo
from ..common.config import settings
from ..common.logger import log

DEFAULT_TIMEZONE = "UTC"
DEFAULT_CURRENCY = "USD"


class GeoService:
    """
    Resolves the timezone and currency of a new account from the caller's IP.
    Uses ip-api.com for IP to location data and countryinfo for currency.
    Registration never fails because of this lookup: private addresses,
    failed lookups and an unreachable service all fall back to UTC/USD.
    """
    IP_API_URL = "http://ip-api.com/json/"

    async def get_location_info(self, ip_address: str | None) -> dict:
        """
        Returns {"timezone": ..., "currency": ...}, always populated.
        """
        defaults = {"timezone": DEFAULT_TIMEZONE, "currency": DEFAULT_CURRENCY}
        if not ip_address:
            return defaults

        log.info(f"Fetching geolocation for IP: {ip_address}")
        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
                response = await client.get(f"{self.IP_API_URL}{ip_address}")
                response.raise_for_status()
                data = response.json()
        except httpx.RequestError as e:
            log.warning(f"Geolocation service unreachable for IP {ip_address}: {e}. Using defaults.")
            return defaults
        except httpx.HTTPStatusError as e:
            log.warning(f"Geolocation service returned {e.response.status_code} for IP {ip_address}. Using defaults.")
            return defaults

        if data.get("status") == "fail":
            log.warning(f"Geolocation skipped for IP {ip_address}: {data.get('message', 'Unknown error')}.")
            return defaults

        timezone = data.get("timezone")
        country_code = data.get("countryCode")
        if not timezone or not country_code:
            log.warning(f"Incomplete geolocation data for IP {ip_address}: {data}. Using defaults.")
            return defaults

        # countryinfo reads its JSON data files from disk
        def get_currencies_sync(code: str) -> list:
            return CountryInfo(code).currencies()

        try:
            currencies = await asyncio.to_thread(get_currencies_sync, country_code)
        except KeyError:
            log.warning(f"countryinfo has no entry for country code: {country_code}")
            currencies = []

        currency = currencies[0] if currencies else DEFAULT_CURRENCY

        log.info(f"Geolocation successful for IP {ip_address}: Timezone={timezone}, Currency={currency}")
        return {"timezone": timezone, "currency": currency}

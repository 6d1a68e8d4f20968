"""
GeoIP country resolution backed by an offline MaxMind database.

The reader is opened once at startup and shared across request threads;
``geoip2.database.Reader`` is safe for concurrent reads.
"""

import ipaddress
import logging
import os
from typing import Optional

import geoip2.database
import geoip2.errors
from maxminddb import InvalidDatabaseError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class GeoIPResolver:
    """Maps client IPs to upper-case ISO 3166-1 alpha-2 country codes."""

    def __init__(self, reader=None):
        """
        Args:
            reader: An object exposing ``country(ip)`` like
                ``geoip2.database.Reader``. None disables lookups.
        """
        self.reader = reader

    @classmethod
    def from_path(cls, path: str, required: bool = True) -> "GeoIPResolver":
        """Open the database at ``path``.

        Raises:
            ConfigurationError: The file is missing or unreadable and
                ``required`` is set.
        """
        if not path or not os.path.exists(path):
            if required:
                raise ConfigurationError(f"GeoIP database not found at {path!r}")
            logger.warning(f"GeoIP database not found at {path!r}, country lookups disabled")
            return cls(None)

        try:
            reader = geoip2.database.Reader(path)
        except (OSError, ValueError, InvalidDatabaseError) as exc:
            if required:
                raise ConfigurationError(f"Failed to open GeoIP database {path!r}: {exc}") from exc
            logger.warning(f"Failed to open GeoIP database {path!r}, country lookups disabled: {exc}")
            return cls(None)

        logger.info(f"GeoIP database loaded from {path}")
        return cls(reader)

    @property
    def available(self) -> bool:
        return self.reader is not None

    def lookup_country_code(self, ip: Optional[str]) -> Optional[str]:
        """Return the country code for ``ip``, or None when it is unknown.

        Never raises: invalid input, non-public addresses, addresses absent
        from the database and reader errors all resolve to None.
        """
        if self.reader is None or not ip or not isinstance(ip, str):
            return None

        try:
            address = ipaddress.ip_address(ip.strip())
        except ValueError:
            logger.debug("GeoIP lookup skipped for malformed address")
            return None

        if not address.is_global:
            return None

        try:
            response = self.reader.country(str(address))
        except geoip2.errors.AddressNotFoundError:
            return None
        except Exception as exc:
            logger.warning(f"GeoIP lookup failed: {exc.__class__.__name__}: {exc}")
            return None

        code = response.country.iso_code or response.registered_country.iso_code
        if not code:
            return None
        return code.upper()

    def close(self) -> None:
        if self.reader is not None:
            self.reader.close()
            self.reader = None

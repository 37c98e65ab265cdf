"""Per-run memoization of pricing lookups."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future

from cdk_cost_guardian.pricing.client import Filters, PriceQuote, PricingLookup

logger = logging.getLogger(__name__)

CacheKey = tuple[str, tuple[tuple[str, str], ...]]


class PriceCache:
    """
    Memoize a pricing lookup for the duration of one estimation run.

    Keys are the service code plus the filters sorted by field name, so the
    same filter set in a different order hits the same entry. Concurrent
    callers asking for the same key share a single in-flight lookup and all
    receive its result. A cache instance serves a single region.
    """

    def __init__(self, lookup: PricingLookup):
        """
        Initialize the cache.

        Args:
            lookup: Pricing lookup service to delegate misses to.
        """
        self.lookup = lookup
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, Future[PriceQuote | None]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(service_code: str, filters: Filters) -> CacheKey:
        """Canonical cache key for a service code and filter set."""
        return service_code, tuple(sorted(filters))

    def __len__(self) -> int:
        return len(self._entries)

    def is_resolved(self, service_code: str, filters: Filters) -> bool:
        """Whether a lookup for this filter set has already completed."""
        with self._lock:
            future = self._entries.get(self.key(service_code, filters))
        return future is not None and future.done()

    def get(
        self,
        service_code: str,
        filters: Filters,
        region: str,
        timeout: float | None = None,
    ) -> PriceQuote | None:
        """
        Return the quote for a filter set, looking it up at most once.

        Args:
            service_code: Pricing service identifier.
            filters: Resolved (field, value) filter pairs.
            region: Region code passed through to the lookup.
            timeout: Seconds to wait for another caller's in-flight lookup.

        Returns:
            The cached or freshly looked-up quote, or None.

        Raises:
            concurrent.futures.TimeoutError: If waiting on an in-flight lookup
                exceeded ``timeout``.
        """
        cache_key = self.key(service_code, filters)

        with self._lock:
            future = self._entries.get(cache_key)
            owner = future is None
            if owner:
                future = Future()
                self._entries[cache_key] = future
                self.misses += 1
            else:
                self.hits += 1

        if owner:
            try:
                quote = self.lookup.lookup(service_code, filters, region)
            except Exception as e:
                # A lookup that breaks its no-raise contract still only costs one resource.
                logger.warning("Pricing lookup for %s raised: %s", service_code, e)
                quote = None
            future.set_result(quote)

        return future.result(timeout=timeout)

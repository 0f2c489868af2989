"""Backfill route polylines for stored offers that lack one."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...persistence.offers import OfferStore, get_offer_store
from ..routing.polyline import PolylineProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BackfillResult:
    updated: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.updated + self.failed


def backfill_polylines(
    store: OfferStore | None = None,
    provider: PolylineProvider | None = None,
) -> BackfillResult:
    """Compute and persist a polyline for every offer without a usable one.

    Offers that already hold two or more points are never selected, so a second run
    is a no-op. Offers are processed one at a time; a failure on one offer is counted
    and logged without affecting the rest.
    """
    store = store if store is not None else get_offer_store()
    provider = provider or PolylineProvider()

    pending = store.find_offers_missing_polyline()
    logger.info(f"Found {len(pending)} offers without polyline")

    result = BackfillResult()
    for offer in pending:
        try:
            polyline = provider.get_route_polyline(
                offer.route.origin.coordinate,
                offer.route.destination.coordinate,
            )
            store.save_polyline(offer.offer_id, polyline)
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to backfill polyline for offer {offer.offer_id}: {e}")
            continue
        result.updated += 1
        logger.info(f"Updated polyline for offer {offer.offer_id} ({len(polyline)} points)")

    logger.info(f"Polyline backfill completed: {result.updated} updated, {result.failed} failed")
    return result

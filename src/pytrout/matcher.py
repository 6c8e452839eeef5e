"""Match newly inserted stockings against active subscriptions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pytrout.models.results import StockingMatch
from pytrout.models.stocking import StockingRecord
from pytrout.models.subscription import Subscription, SubscriptionKind


class SubscriptionMatcher:
    """Select records worth notifying about.

    A record matches when its county is an enabled county subscription or
    its waterbody is an enabled waterbody subscription. Each record yields
    at most one :class:`StockingMatch`, carrying every subscription it hit.
    """

    def match(
        self,
        records: Sequence[StockingRecord],
        subscriptions: Iterable[Subscription],
    ) -> list[StockingMatch]:
        by_county: dict[str, Subscription] = {}
        by_waterbody: dict[str, Subscription] = {}
        for sub in subscriptions:
            if not sub.enabled:
                continue
            if sub.kind == SubscriptionKind.COUNTY:
                by_county.setdefault(sub.value, sub)
            else:
                by_waterbody.setdefault(sub.value, sub)

        if not by_county and not by_waterbody:
            return []

        matches: list[StockingMatch] = []
        seen: set[int | tuple[str, object]] = set()
        for record in records:
            # Same record twice in one batch still notifies once.
            identity = record.id if record.id is not None else record.key
            if identity in seen:
                continue
            hits = tuple(
                sub
                for sub in (by_county.get(record.county), by_waterbody.get(record.waterbody))
                if sub is not None
            )
            if hits:
                seen.add(identity)
                matches.append(StockingMatch(record=record, subscriptions=hits))
        return matches

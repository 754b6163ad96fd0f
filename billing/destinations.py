"""
Delivery destination of a purchase bill: either a godown or a site, never both.
Persisted as delivered_to_type + one of two foreign keys; in code it is one of
these two frozen variants.
"""
from dataclasses import dataclass

from inventory.models import Godown, Site


@dataclass(frozen=True)
class GodownDestination:
    godown: Godown
    kind = "GODOWN"

    @property
    def target(self):
        return self.godown


@dataclass(frozen=True)
class SiteDestination:
    site: Site
    kind = "SITE"

    @property
    def target(self):
        return self.site


def destination_for(kind, target):
    if kind == GodownDestination.kind:
        return GodownDestination(godown=target)
    if kind == SiteDestination.kind:
        return SiteDestination(site=target)
    raise ValueError(f"Unknown destination type: {kind!r}")

"""World store: read/write access to one campaign's generated world."""

from ._core import CoreMixin
from ._entities import EntityMixin


class WorldStore(CoreMixin, EntityMixin):
    """Entity store for one campaign's WorldSeed and everything under it.

    Holds one long-lived SQLAlchemy session; call close() when done.
    Every query is scoped to this campaign's world seed.
    """

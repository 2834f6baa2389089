"""Read-side records."""

from palpitaco.models.draw import Draw, PartitionBounds, Prize, StalenessRow
from palpitaco.models.scope import PartitionFilter, Scope

__all__ = ["Draw", "PartitionBounds", "PartitionFilter", "Prize", "Scope", "StalenessRow"]

"""
Entity

Data holders for entity field values and the descriptors that bind an
entity type to its table.
"""

from entityrepo.entity.data import Data
from entityrepo.entity.descriptor import EntityDescriptor

__all__ = ["Data", "EntityDescriptor"]

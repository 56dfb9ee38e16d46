"""
Repository

Generic create/read/update/delete over a single table. A concrete
repository only supplies an EntityDescriptor: the table name, its
primary-key attributes and the class rows are wrapped into.
"""

from entityrepo.repository.base import EntityRepository

__all__ = ["EntityRepository"]

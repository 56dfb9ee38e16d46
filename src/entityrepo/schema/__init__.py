from entityrepo.schema.accessor import SchemaAccessor

__all__ = ["SchemaAccessor"]

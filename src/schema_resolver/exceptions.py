"""Custom exceptions for the schema resolver."""


class SchemaResolverError(Exception):
    """Base exception for all schema resolver errors."""

    pass


class ConnectionError(SchemaResolverError):
    """Error establishing database connection."""

    pass


class ConfigurationError(SchemaResolverError):
    """Error in configuration or parameters."""

    pass


class CatalogError(SchemaResolverError):
    """Catalog metadata is inconsistent or cannot be decoded."""

    pass


class StatementError(SchemaResolverError):
    """Error introspecting a hand-written SQL statement."""

    pass


class SpecFileError(SchemaResolverError):
    """Error reading or writing the persisted spec file."""

    pass


class RangeParseError(ValueError):
    """Malformed range or multirange literal."""

    pass

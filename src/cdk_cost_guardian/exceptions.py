"""Exceptions shared across CDK Cost Guardian modules."""


class InputError(Exception):
    """Raised when a change report or resource map cannot be parsed.

    This is the only error that aborts a cost estimation run.
    """

    pass


class ConfigError(Exception):
    """Raised when configuration files or environment overrides are invalid."""

    pass

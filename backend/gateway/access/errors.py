"""Errors raised while building or validating the routing configuration."""


class ConfigurationError(ValueError):
    """The role, dashboard or legacy-redirect tables are inconsistent.

    Raised at startup only. A process that hits this must not serve requests.
    """

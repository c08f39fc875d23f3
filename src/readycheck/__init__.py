"""readycheck: environment readiness checks for Laravel Octane deployments."""

__version__ = "0.1.0"

"""Packaged configuration files (``config.default.toml``)."""

"""Lighthouse report viewer: intake, validation and deep-link bookkeeping."""

__all__ = ["config", "controller", "errors", "models", "schema"]

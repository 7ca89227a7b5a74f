"""
App support package.

Configuration loading (Parameter Store with environment fallback) and
HTTP middleware shared by the components.
"""

__all__ = ["config", "middleware"]

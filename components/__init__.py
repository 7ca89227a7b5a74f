"""
Components served by the application.

Each module exposes ``create_app(context)`` returning an ASGI app; the
manifest names it in a component's ``source`` as ``module:attribute``.
"""

from components.context import ComponentContext

__all__ = ["ComponentContext"]

"""Static file server component: serves the component's file mounts."""

import logging

from starlette.applications import Starlette
from starlette.routing import Mount
from starlette.staticfiles import StaticFiles

from components.context import ComponentContext
from manifest.errors import ManifestError

logger = logging.getLogger(__name__)


def create_app(context: ComponentContext) -> Starlette:
    """
    Serve every file mount, longest destination first.

    A request for a directory serves its index.html.

    Raises:
        ManifestError: If the component has no file mounts or a source
            directory does not exist
    """
    mounts = sorted(context.component.files, key=lambda m: len(m.destination.rstrip("/")), reverse=True)
    if not mounts:
        raise ManifestError(f"Component '{context.component.id}' has no files to serve")

    routes = []
    for mount in mounts:
        directory = context.resolve_path(mount.source)
        if not directory.is_dir():
            raise ManifestError(
                f"Component '{context.component.id}' file source is not a directory: {directory}"
            )
        routes.append(Mount(mount.destination.rstrip("/"), app=StaticFiles(directory=directory, html=True)))
        logger.info(f"Serving {directory} at {mount.destination}")

    return Starlette(routes=routes)

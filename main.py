import os
import logging
import importlib
from pathlib import Path
from typing import Callable, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum
from starlette.responses import RedirectResponse
from starlette.routing import Route

from app.config import Config
from components.context import ComponentContext
from kv_store import StoreManager
from manifest import ApplicationManifest, Component, ManifestError, RouteTable, load_manifest
from manifest.variables import resolve_component_variables, resolve_variables
from models import HealthResponse, Settings
from version import get_version_info

# Load environment variables
load_dotenv()

# Setup logging
logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

_logging_configured = False


def configure_logging(level: str = "INFO"):
    """Configure root logging once per process."""
    global _logging_configured

    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True


def load_component_factory(component: Component) -> Callable:
    """
    Import the factory named by a component's local source.

    Raises:
        ManifestError: If the component is remote or the import fails
    """
    if component.is_remote:
        raise ManifestError(
            f"Component '{component.id}' has a remote source ({component.source.url}) "
            "and cannot be served in-process"
        )

    module_name, attribute = component.import_target()
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ManifestError(f"Cannot import module '{module_name}' for component '{component.id}': {e}") from e

    factory = getattr(module, attribute, None)
    if not callable(factory):
        raise ManifestError(f"'{component.source}' for component '{component.id}' is not callable")
    return factory


def _redirect_to(url: str):
    async def redirect(request):
        target = url
        if request.url.query:
            target = f"{url}?{request.url.query}"
        return RedirectResponse(target, status_code=307)
    return redirect


def _build_components(
    manifest: ApplicationManifest,
    values: Dict[str, str],
    stores: StoreManager,
    settings: Settings,
    config: Config,
) -> Dict[str, object]:
    """Build one ASGI app per routed component."""
    apps = {}
    for trigger in manifest.triggers:
        component = manifest.component_for(trigger)
        if component.id in apps:
            continue

        context = ComponentContext(
            component=component,
            variables=resolve_component_variables(component, values),
            stores=stores,
            settings=settings,
            config=config,
            base_dir=Path(manifest.base_dir),
        )
        factory = load_component_factory(component)
        apps[component.id] = factory(context)
        logger.info(f"Built component: id={component.id}, source={component.source}")
    return apps


def create_app(
    manifest_path: Optional[str] = None,
    settings: Optional[Settings] = None,
    config: Optional[Config] = None,
) -> FastAPI:
    """
    Assemble the application described by a manifest.

    Each HTTP trigger mounts its component, most specific route first, so
    the first matching mount is the one the route table selects.

    Args:
        manifest_path: Manifest file (defaults to settings.manifest_path)
        settings: Application settings (defaults to Settings() from the environment)
        config: Variable/secret provider (defaults to Parameter Store with env fallback)

    Raises:
        ManifestError: If the manifest is invalid or a component cannot be built
        VariableError: If a required variable has no value
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)
    if config is None:
        config = Config(parameter_prefix=settings.parameter_prefix)
        config.preload()

    manifest = load_manifest(manifest_path or settings.manifest_path)
    values = resolve_variables(manifest, config)

    stores = StoreManager(
        backend=settings.resolved_kv_backend(),
        known_labels=manifest.key_value_stores(),
        data_dir=settings.kv_data_dir,
        table_prefix=settings.kv_table_prefix,
        region_name=settings.aws_region,
    )

    app = FastAPI(
        title=manifest.application.name,
        version=manifest.application.version,
        description=manifest.application.description or "",
    )
    app.state.manifest = manifest
    app.state.stores = stores

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health Check
    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            application=manifest.application.name,
            version=manifest.application.version,
        )

    @app.get("/version")
    async def version_info():
        """Build and runtime version information."""
        return get_version_info(manifest.application.version)

    component_apps = _build_components(manifest, values, stores, settings, config)

    for pattern, trigger in RouteTable(manifest.triggers).ordered():
        sub_app = component_apps[trigger.component]
        if pattern.wildcard:
            if pattern.prefix:
                app.router.routes.append(
                    Route(pattern.prefix, endpoint=_redirect_to(pattern.prefix + "/"), methods=ALL_METHODS)
                )
            app.mount(pattern.prefix, sub_app, name=trigger.component)
        else:
            # Exact routes pass the full path through to the component
            app.router.routes.append(Route(pattern.prefix, endpoint=sub_app))
        logger.info(f"Mounted route: route={trigger.route}, component={trigger.component}")

    return app


# ============================================================================
# AWS Lambda Handler (Mangum Adapter)
# ============================================================================

_lambda_handler = None


def handler(event: dict, context) -> dict:
    """
    Lambda entry point.

    The app is built on the first invocation (cold start) and reused.
    """
    global _lambda_handler

    if _lambda_handler is None:
        _lambda_handler = Mangum(create_app(), lifespan="off")  # Use "off" to avoid lifespan issues in Lambda
        logger.info(f"Lambda handler initialized: function={os.getenv('AWS_LAMBDA_FUNCTION_NAME', 'unknown')}")

    return _lambda_handler(event, context)

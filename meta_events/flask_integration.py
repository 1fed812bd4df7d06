"""
Flask integration for meta_events.

Gives every request its own Tracker and FrontendEventRegistry (stored on
``flask.g``) and exposes the registry and auto-tracking helpers to
templates:

    <a {{ attrs }}>  with attrs = meta_events_tracking_attributes_for({...})
    <script>{{ meta_events_frontend_events_javascript() }}</script>
"""

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from flask import Blueprint, Request, g, request
from markupsafe import Markup

from .auto_tracking import tracking_attributes_for
from .catalog import DefinitionCatalog, NameLike
from .config import ConfigManager, FrontendConfig, TrackingConfig
from .frontend_events import FrontendEventEntry, FrontendEventRegistry
from .logging_config import setup_logging
from .tracker import EventReceiver, Tracker

logger = logging.getLogger(__name__)

DistinctIdFunc = Callable[[Request], Optional[str]]


def distinct_id_from_cookie(req: Request) -> Optional[str]:
    """Default caller identifier: the ``uid`` cookie."""
    return req.cookies.get("uid")


class MetaEventsService:
    """Creates and hands out the per-request Tracker and registry."""

    def __init__(
        self,
        catalog: DefinitionCatalog,
        distinct_id_func: DistinctIdFunc = distinct_id_from_cookie,
        tracking_config: Optional[TrackingConfig] = None,
        frontend_config: Optional[FrontendConfig] = None,
        implicit_properties: Optional[Mapping[str, Any]] = None,
        event_receivers: Iterable[EventReceiver] = (),
        config_manager: Optional[ConfigManager] = None,
    ):
        """Initialize the service.

        Args:
            catalog: Shared event catalog
            distinct_id_func: Extracts the caller identifier from a request
            tracking_config: Default version and deprecation warning settings
            frontend_config: JavaScript namespace for the generated script
            implicit_properties: Properties added to every tracker this service creates
            event_receivers: Receivers attached to every tracker this service creates
            config_manager: Source of whichever config section is not passed;
                a default ``ConfigManager`` (file + environment) when omitted
        """
        self.catalog = catalog
        self.distinct_id_func = distinct_id_func
        if tracking_config is None or frontend_config is None:
            config_manager = config_manager or ConfigManager()
        self.tracking_config = tracking_config or config_manager.get_tracking_config()
        self.frontend_config = frontend_config or config_manager.get_frontend_config()
        self.implicit_properties = dict(implicit_properties or {})
        self.event_receivers = list(event_receivers)

    def create_tracker(self, distinct_id: Optional[str], ip: Optional[str] = None) -> Tracker:
        """Build a Tracker bound to this service's catalog and settings."""
        return Tracker(
            distinct_id,
            self.catalog,
            version=self.tracking_config.default_version,
            implicit_properties=self.implicit_properties,
            ip=ip,
            event_receivers=self.event_receivers,
            warn_on_deprecated=self.tracking_config.warn_on_deprecated,
        )

    def add_event_receiver(self, receiver: EventReceiver) -> None:
        self.event_receivers.append(receiver)

    def current_tracker(self) -> Tracker:
        """Tracker for the current request, created on first use."""
        tracker = g.get("meta_events_tracker")
        if tracker is None:
            tracker = self.create_tracker(self.distinct_id_func(request), request.remote_addr)
            g.meta_events_tracker = tracker
        return tracker

    def current_registry(self) -> FrontendEventRegistry:
        """Frontend event registry for the current request, created on first use."""
        registry = g.get("meta_events_registry")
        if registry is None:
            registry = FrontendEventRegistry(self.current_tracker(), namespace=self.frontend_config.js_namespace)
            g.meta_events_registry = registry
        return registry

    def define_frontend_event(
        self,
        category: NameLike,
        event: NameLike,
        properties: Optional[Mapping[str, Any]] = None,
        name: Optional[NameLike] = None,
    ) -> FrontendEventEntry:
        return self.current_registry().register(category, event, properties, name=name)

    def defined_frontend_events(self) -> Dict[str, Dict[str, Any]]:
        return self.current_registry().all_entries()

    def frontend_events_javascript(self) -> Markup:
        # Already escaped for inline <script> use
        return Markup(self.current_registry().serialize_as_script())

    def tracking_attributes_for(self, attributes: Mapping[Any, Any], tracker: Optional[Tracker] = None) -> Mapping[Any, Any]:
        return tracking_attributes_for(attributes, tracker or self.current_tracker())


def create_meta_events_blueprint(service: MetaEventsService) -> Blueprint:
    """Create a Flask blueprint that exposes meta_events helpers to templates.

    Args:
        service: Service providing per-request trackers and registries

    Returns:
        Flask blueprint; register it on the app to enable the template helpers
    """
    bp = Blueprint('meta_events', __name__)

    @bp.app_context_processor
    def inject_meta_events_helpers():
        return {
            "meta_events_define_frontend_event": service.define_frontend_event,
            "meta_events_defined_frontend_events": service.defined_frontend_events,
            "meta_events_frontend_events_javascript": service.frontend_events_javascript,
            "meta_events_tracking_attributes_for": service.tracking_attributes_for,
        }

    return bp


def create_meta_events_module(
    catalog: DefinitionCatalog,
    distinct_id_func: DistinctIdFunc = distinct_id_from_cookie,
    tracking_config: Optional[TrackingConfig] = None,
    frontend_config: Optional[FrontendConfig] = None,
    implicit_properties: Optional[Mapping[str, Any]] = None,
    config_manager: Optional[ConfigManager] = None,
) -> dict:
    """Create meta_events module with service and blueprint.

    Args:
        catalog: Shared event catalog, built once at startup
        distinct_id_func: Extracts the caller identifier from a request
        tracking_config: Tracker settings; read from ``config_manager`` when omitted
        frontend_config: Frontend script settings; read from ``config_manager`` when omitted
        implicit_properties: Properties added to every event
        config_manager: Configuration source, ``ConfigManager()`` by default

    Returns:
        Dictionary containing the service and blueprint
    """
    service = MetaEventsService(
        catalog=catalog,
        distinct_id_func=distinct_id_func,
        tracking_config=tracking_config,
        frontend_config=frontend_config,
        implicit_properties=implicit_properties,
        config_manager=config_manager,
    )
    blueprint = create_meta_events_blueprint(service)

    if service.tracking_config.debug:
        setup_logging(debug=True)

    logger.info("meta_events module ready (catalog versions: %s)", [v.number for v in catalog.versions])

    return {
        "service": service,
        "blueprint": blueprint
    }

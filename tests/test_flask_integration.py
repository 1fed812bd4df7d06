"""
Integration tests for the Flask module: per-request trackers, template helpers
and generated script.
"""

import json
import logging
import logging.handlers
import re
from unittest.mock import patch

import pytest
from flask import Flask, render_template_string

from meta_events.config import ConfigManager, FrontendConfig, TrackingConfig
from meta_events.flask_integration import MetaEventsService, create_meta_events_module
from meta_events.logging_config import stop_logging

PAGE_TEMPLATE = """
{%- set attrs = meta_events_tracking_attributes_for({"meta_event": {"category": "foo", "event": "baz"}, "href": "/p"}) -%}
<a class="{{ attrs['class'] | join(' ') }}" data-mejtp_evt="{{ attrs['data-mejtp_evt'] }}">x</a>
<script>{{ meta_events_frontend_events_javascript() }}</script>
"""


class TestMetaEventsFlaskModule:
    """Test the Flask blueprint and service together."""

    @pytest.fixture
    def module(self, catalog):
        """Create the meta_events module around the shared catalog."""
        return create_meta_events_module(
            catalog,
            implicit_properties={"imp1": "imp1val1"},
        )

    @pytest.fixture
    def app(self, module):
        """Create a Flask app with the meta_events blueprint and two pages."""
        app = Flask(__name__)
        app.config['TESTING'] = True
        app.register_blueprint(module["blueprint"])
        service = module["service"]

        @app.route("/page")
        def page():
            service.define_frontend_event("foo", "bar", {"quux": 123})
            return render_template_string(PAGE_TEMPLATE)

        @app.route("/entries")
        def entries():
            return service.defined_frontend_events()

        @app.route("/empty")
        def empty():
            return render_template_string("[{{ meta_events_frontend_events_javascript() }}]")

        return app

    @pytest.fixture
    def client(self, app):
        """Create a test client."""
        return app.test_client()

    def test_module_contents(self, module):
        """Test the factory returns a service and a blueprint."""
        assert set(module) == {"service", "blueprint"}
        assert module["blueprint"].name == "meta_events"

    def test_page_renders_script_and_attributes(self, client):
        """Test a page gets the registered script and auto-tracking attributes."""
        client.set_cookie('uid', 'abc123')
        res = client.get('/page')
        assert res.status_code == 200
        html = res.get_data(as_text=True)

        assert 'class="mejtp_trk"' in html
        assert 'data-mejtp_evt="xy1_foo_baz"' in html

        match = re.search(r'MetaEvents\.registerFrontendEvent\("foo_bar", (.*?)\);', html)
        assert match
        assert json.loads(match.group(1)) == {
            "distinct_id": "abc123",
            "event_name": "xy1_foo_bar",
            "properties": {"ip": "127.0.0.1", "imp1": "imp1val1", "quux": 123},
        }

    def test_registry_is_per_request(self, client):
        """Test registrations from one request do not leak into the next."""
        client.get('/page')
        res = client.get('/entries')
        assert res.get_json() == {}

    def test_empty_script(self, client):
        """Test no registrations render as an empty string."""
        res = client.get('/empty')
        assert res.get_data(as_text=True) == "[]"

    def test_missing_uid(self, app, module):
        """Test a request without the uid cookie tracks with a null distinct_id."""
        with app.test_request_context('/'):
            tracker = module["service"].current_tracker()
            assert tracker.distinct_id is None
            assert module["service"].current_tracker() is tracker

    def test_custom_distinct_id_and_config(self, catalog):
        """Test a custom identifier function, pinned version and namespace."""
        module = create_meta_events_module(
            catalog,
            distinct_id_func=lambda req: req.headers.get("X-User"),
            tracking_config=TrackingConfig(default_version=1, warn_on_deprecated=False, debug=False),
            frontend_config=FrontendConfig(js_namespace="Analytics"),
        )
        app = Flask(__name__)
        app.register_blueprint(module["blueprint"])
        service = module["service"]

        with app.test_request_context('/', headers={"X-User": "u-42"}):
            service.define_frontend_event("foo", "bar", name="clicked")
            assert service.defined_frontend_events()["clicked"]["distinct_id"] == "u-42"
            assert str(service.frontend_events_javascript()).startswith('Analytics.registerFrontendEvent("clicked", ')
            assert service.current_tracker().version == 1

    def test_namespace_from_environment(self, catalog):
        """Test the script namespace falls back to META_EVENTS_JS_NAMESPACE."""
        with patch.dict('os.environ', {'META_EVENTS_JS_NAMESPACE': 'Analytics'}):
            module = create_meta_events_module(catalog)
        app = Flask(__name__)
        app.register_blueprint(module["blueprint"])

        @app.route("/script")
        def script():
            module["service"].define_frontend_event("foo", "bar")
            return render_template_string("{{ meta_events_frontend_events_javascript() }}")

        html = app.test_client().get('/script').get_data(as_text=True)
        assert html.startswith('Analytics.registerFrontendEvent("foo_bar", ')
        assert "MetaEvents." not in html

    def test_tracking_config_from_file(self, catalog, tmp_path):
        """Test an explicit ConfigManager supplies the tracking section."""
        config_file = tmp_path / "meta_events_config.json"
        config_file.write_text(json.dumps({"tracking": {"default_version": 1}}))

        module = create_meta_events_module(catalog, config_manager=ConfigManager(str(config_file)))
        service = module["service"]
        assert service.tracking_config.default_version == 1
        assert service.frontend_config.js_namespace == "MetaEvents"

        app = Flask(__name__)
        with app.test_request_context('/'):
            assert service.current_tracker().version == 1

    def test_debug_configures_package_logging(self, catalog):
        """Test debug mode attaches the queue handler to the meta_events logger."""
        package_logger = logging.getLogger("meta_events")
        try:
            create_meta_events_module(
                catalog,
                tracking_config=TrackingConfig(default_version=None, warn_on_deprecated=True, debug=True),
                frontend_config=FrontendConfig(js_namespace="MetaEvents"),
            )
            assert package_logger.level == logging.DEBUG
            assert any(isinstance(h, logging.handlers.QueueHandler) for h in package_logger.handlers)
        finally:
            stop_logging()
        assert not any(isinstance(h, logging.handlers.QueueHandler) for h in package_logger.handlers)

    def test_no_logging_setup_without_debug(self, catalog):
        """Test the factory leaves logging alone when debug is off."""
        with patch('meta_events.flask_integration.setup_logging') as mock_setup:
            create_meta_events_module(
                catalog,
                tracking_config=TrackingConfig(default_version=None, warn_on_deprecated=True, debug=False),
                frontend_config=FrontendConfig(js_namespace="MetaEvents"),
            )
        mock_setup.assert_not_called()


class TestMetaEventsService:
    """Test the service outside of a blueprint."""

    def test_event_receivers_from_any_iterable(self, catalog):
        """Test receivers may be passed as a generator and reach every tracker."""
        received = []
        service = MetaEventsService(
            catalog,
            tracking_config=TrackingConfig(default_version=None, warn_on_deprecated=True, debug=False),
            frontend_config=FrontendConfig(js_namespace="MetaEvents"),
            event_receivers=(receiver for receiver in [lambda *args: received.append(args)]),
        )
        service.create_tracker("u1").track("foo", "bar")
        service.create_tracker("u2").track("foo", "baz")
        assert [args[:2] for args in received] == [("u1", "xy1_foo_bar"), ("u2", "xy1_foo_baz")]

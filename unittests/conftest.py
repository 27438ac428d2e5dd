"""Shared fixtures: an in-memory environment standing in for a browser."""

import time

import pytest

from domharness.config import HarnessConfig
from domharness.env.environment import Environment
from domharness.lib.http import HttpResponse
from domharness.lib.navigation import LoadListener


class FakeElement:
    """Element of the in-memory page."""

    def __init__(self, name, visible=True, parent=None, props=None, attrs=None, options=None):
        self.name = name
        self.visible = visible
        self.parent = parent
        self.props = props or {}
        self.attrs = attrs or {}
        self.options = options

    def __repr__(self):
        return f"FakeElement({self.name!r})"


class FakeLoadListener(LoadListener):
    def __init__(self, environment):
        self.environment = environment
        self.armed_at = environment.load_count
        self.closed = False

    def is_loaded(self):
        self.environment.check_page_error()
        return self.environment.load_count > self.armed_at

    def close(self):
        self.closed = True


class FakeEnvironment(Environment):
    """Environment reading an in-memory page."""

    def __init__(self, config=None):
        super().__init__(config)
        self.current_url = "about:blank"
        self.selectors = {}
        self.globals = {}
        self.load_count = 0
        self.load_error = None
        self.events = []
        self.rendered = []
        self.blocks = []
        self.durations = []
        self.selector_checks = 0
        self.visibility_calls = []
        self.listeners = []

    # page setup helpers

    def add(self, selector, elem):
        self.selectors.setdefault(selector, []).append(elem)
        return elem

    # backend interface

    def url(self):
        return self.current_url

    def query(self, selector, parent=None):
        found = self.query_all(selector, parent)
        return found[0] if found else None

    def query_all(self, selector, parent=None):
        if not isinstance(selector, str):
            return []
        items = self.selectors.get(selector, [])
        if parent is not None:
            items = [item for item in items if item.parent is parent]
        return list(items)

    def closest(self, elem, selector):
        candidates = self.selectors.get(selector, [])
        while elem is not None:
            if elem in candidates:
                return elem
            elem = elem.parent
        return None

    def parent_node(self, elem):
        return None if elem is None else elem.parent

    def attr(self, elem, name):
        return None if elem is None else elem.attrs.get(name)

    def has_attr(self, elem, name):
        return elem is not None and name in elem.attrs

    def has_class(self, elem, name):
        return elem is not None and name in elem.attrs.get("class", "").split()

    def evaluate_visibility(self, elems):
        self.visibility_calls.append(list(elems))
        return [elem is not None and self._element_visible(elem, True) for elem in elems]

    def input(self, elem, value):
        self.events.append(("input", elem, value))

    def click(self, elem):
        self.events.append(("click", elem))

    def on_change(self, elem):
        self.events.append(("change", elem))

    def on_blur(self, elem):
        self.events.append(("blur", elem))

    def http_req(self, method, url, data=None, headers=None):
        return HttpResponse(status=200, headers={}, body="", url=url)

    def get_content(self):
        return f"<html><body>{self.current_url}</body></html>"

    def set_block(self, title, category):
        self.blocks.append((title, category))

    def set_duration(self, duration):
        self.durations.append(duration)

    def _render_result(self, record):
        self.rendered.append(record)

    def _element_visible(self, elem, recursive):
        if not elem.visible:
            return False
        if recursive and elem.parent is not None:
            return self._element_visible(elem.parent, True)
        return True

    def _read_property(self, elem, segments):
        current = elem.props
        for segment in segments:
            if not isinstance(current, dict) or segment not in current:
                return False, None
            current = current[segment]
        return True, current

    def _read_global(self, segments):
        current = self.globals
        for segment in segments:
            if not isinstance(current, dict) or segment not in current:
                return False, None
            current = current[segment]
        return True, current

    def _select_options(self, elem):
        return elem.options

    def _apply_selection(self, elem, index, selected):
        self.events.append(("select", elem, index, selected))

    def _selector_state(self, selector):
        self.selector_checks += 1
        elem = self.query(selector)
        return elem is not None, elem is not None and self._element_visible(elem, True)

    def _open(self, url):
        self.current_url = url
        if self.load_error is not None:
            self.on_page_error(self.load_error)
            return
        self.load_count += 1

    def _arm_load_listener(self):
        listener = FakeLoadListener(self)
        self.listeners.append(listener)
        return listener

    def _acquire_document(self):
        self.events.append(("acquire",))

    def _apply_polyfills(self):
        self.events.append(("polyfills",))

    def _sleep(self, seconds):
        time.sleep(seconds)


@pytest.fixture
def config():
    return HarnessConfig(base_url="http://test.local/app/", timeout=100, polling=10)


@pytest.fixture
def env(config):
    return FakeEnvironment(config)


@pytest.fixture
def element():
    return FakeElement

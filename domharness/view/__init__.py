"""Component and view state model."""

from domharness.view.component import TestComponent
from domharness.view.view import TestView

__all__ = ["TestComponent", "TestView"]

"""Test utilities for warbler applications.

    from warbler.testing import TestClient
"""

from warbler.testing.client import TestClient, set_cookies

__all__ = ["TestClient", "set_cookies"]

"""Test utilities for perch applications.

    from perch.testing import TestClient
"""

from perch.testing.client import TestClient, encode_multipart

__all__ = ["TestClient", "encode_multipart"]

"""HTTP surface for the inbox prioritizer.

Provides a FastAPI app with:
- gmail-fetch: list + hydrate the newest messages
- gmail-analyze: rank a batch by priority
- health endpoint
"""

from prioritizer.web.app import create_app

__all__ = ["create_app"]

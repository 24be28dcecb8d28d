"""Feed asset orchestrator.

Dispatches batches of catalog items to AI generation providers, normalizes
their responses into one asset model and reconciles assets whose provider
jobs finish asynchronously.
"""

from .pipeline import FeedGenerator  # noqa: F401

__all__ = ["FeedGenerator"]

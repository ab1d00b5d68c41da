"""
Ingesta del feed XML de propiedades: descarga (FeedClient) y normalizacion (FeedParser).
"""
from propsync.infrastructure.feed.feed_client import FeedClient
from propsync.infrastructure.feed.feed_parser import FeedParser

__all__ = ["FeedClient", "FeedParser"]

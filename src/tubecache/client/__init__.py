"""Remote resource client: transport plus the fetch-or-degrade facade."""

from tubecache.client.facade import ResourceClient
from tubecache.client.transport import VideoApiTransport

__all__ = ["ResourceClient", "VideoApiTransport"]

"""Remote API clients."""

from .api_client import ApiClient
from .connectivity import ConnectivityMonitor
from .errors import (
    ApiError,
    ConflictError,
    DecodeError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from .mock_client import MockRemoteService, MockResourceClient
from .protocols import RemoteResourceProtocol
from .remote import (
    RejectedRecord,
    RemoteClients,
    RemoteListing,
    RemoteRecord,
    ResourceClient,
    build_remote_clients,
)

__all__ = [
    "ApiClient",
    "ApiError",
    "ConflictError",
    "ConnectivityMonitor",
    "DecodeError",
    "MockRemoteService",
    "MockResourceClient",
    "NotFoundError",
    "RejectedRecord",
    "RemoteClients",
    "RemoteListing",
    "RemoteRecord",
    "RemoteResourceProtocol",
    "ResourceClient",
    "TransportError",
    "UnauthorizedError",
    "ValidationError",
    "build_remote_clients",
]

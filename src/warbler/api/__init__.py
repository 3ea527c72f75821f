"""JSON endpoints: the data-query gateway and client diagnostics."""

from warbler.api.diagnostics import DIAGNOSTICS_PATH, record_client_error
from warbler.api.gateway import QueryGateway, QueryResult, QuerySchema

__all__ = [
    "DIAGNOSTICS_PATH",
    "QueryGateway",
    "QueryResult",
    "QuerySchema",
    "record_client_error",
]

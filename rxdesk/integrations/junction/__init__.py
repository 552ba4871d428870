from .healthDataService import (
    METRIC_CATEGORIES,
    JunctionError,
    create_link_token,
    disconnect_provider,
    get_metrics,
    list_connected_providers,
    resolve_or_create_user,
    set_transport,
)

__all__ = [
    "METRIC_CATEGORIES",
    "JunctionError",
    "create_link_token",
    "disconnect_provider",
    "get_metrics",
    "list_connected_providers",
    "resolve_or_create_user",
    "set_transport",
]

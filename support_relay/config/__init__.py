from .settings import (
    DEFAULT_PRIORITY_MAP,
    DeliverySettings,
    KayakoSettings,
    SpamSettings,
    SupportSettings,
    get_settings,
)

__all__ = [
    'DEFAULT_PRIORITY_MAP',
    'DeliverySettings',
    'KayakoSettings',
    'SpamSettings',
    'SupportSettings',
    'get_settings',
]

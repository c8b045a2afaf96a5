from .base import SupportProvider
from .factory import ProviderFactory
from .kayako import KayakoProvider
from .local import LocalProvider

__all__ = [
    'SupportProvider',
    'ProviderFactory',
    'KayakoProvider',
    'LocalProvider',
]

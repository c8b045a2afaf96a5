from . import provider, submissions

__all__ = ['provider', 'submissions']

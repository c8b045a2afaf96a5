from .database import build_engine, build_session_factory, init_db, session_scope
from .models import Base, DeliveryStatus, SubmissionRecord
from .repository import SubmissionRepository, SubmissionStore

__all__ = [
    'build_engine',
    'build_session_factory',
    'init_db',
    'session_scope',
    'Base',
    'DeliveryStatus',
    'SubmissionRecord',
    'SubmissionRepository',
    'SubmissionStore',
]

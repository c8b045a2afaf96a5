"""
Support relay package.

Screens support form submissions for spam and forwards legitimate ones to
the configured helpdesk, keeping a local record of every submission.
"""

__version__ = '1.0.0'

from .classification import SpamClassifier
from .config import SupportSettings, get_settings
from .delivery import AsyncioTaskRunner, DeliveryTask, RetryPolicy
from .models import (
    CaseRequest,
    CaseResult,
    FormSubmission,
    PipelineResult,
    PipelineStatus,
    SpamReason,
    SpamVerdict,
)
from .pipeline import SupportFormPipeline
from .providers import KayakoProvider, LocalProvider, ProviderFactory, SupportProvider

__all__ = [
    'SpamClassifier',
    'SupportSettings',
    'get_settings',
    'AsyncioTaskRunner',
    'DeliveryTask',
    'RetryPolicy',
    'CaseRequest',
    'CaseResult',
    'FormSubmission',
    'PipelineResult',
    'PipelineStatus',
    'SpamReason',
    'SpamVerdict',
    'SupportFormPipeline',
    'KayakoProvider',
    'LocalProvider',
    'ProviderFactory',
    'SupportProvider',
]

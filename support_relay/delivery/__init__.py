from .retry import Delivered, RetryableFailure, RetryPolicy, Skipped, TerminalFailure
from .runner import AsyncioTaskRunner, TaskRunner
from .task import DeliveryOutcome, DeliveryTask, RecordFailureHandler, TerminalFailureHandler

__all__ = [
    'Delivered',
    'RetryableFailure',
    'RetryPolicy',
    'Skipped',
    'TerminalFailure',
    'AsyncioTaskRunner',
    'TaskRunner',
    'DeliveryOutcome',
    'DeliveryTask',
    'RecordFailureHandler',
    'TerminalFailureHandler',
]

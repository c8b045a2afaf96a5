from .logging_setup import RedactingFormatter, configure_logging

__all__ = ['RedactingFormatter', 'configure_logging']

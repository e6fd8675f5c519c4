"""Utility functions for SRAdb ETL"""

import coloredlogs


def setup_logging(verbose=False, quiet=False):
    """Setup logging configuration"""
    if quiet:
        level = 'ERROR'
    elif verbose:
        level = 'DEBUG'
    else:
        level = 'INFO'

    coloredlogs.install(
        level=level,
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def format_error_message(error, sample=None, table=None):
    """Format error message with context"""
    msg = str(error)
    if sample is not None:
        msg = f"Sample {sample}: {msg}"
    if table is not None:
        msg = f"Table '{table}': {msg}"
    return msg

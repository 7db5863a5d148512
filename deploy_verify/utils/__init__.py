"""
Utils package - Shared utility functions.
"""

from deploy_verify.utils.date_parser import DateParser
from deploy_verify.utils.logger import setup_logging
from deploy_verify.utils.shell import CommandResult, run_command

__all__ = ['DateParser', 'setup_logging', 'CommandResult', 'run_command']

"""
Worker module.
Contains the polling worker and handler invocation.
"""

from docqueue.worker.handlers import JobHandler, run_handler
from docqueue.worker.main import Worker

__all__ = ["Worker", "JobHandler", "run_handler"]

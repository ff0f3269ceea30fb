"""
FastAPI Task Backend package.

The application instance lives in src.task_api.main; the task operations are
in src.task_api.services and can be used without the HTTP layer.
"""

__version__ = "1.0.0"

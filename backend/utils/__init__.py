"""
Utility functions and decorators.
"""

from .error_handlers import handle_api_errors, error_response

__all__ = ["handle_api_errors", "error_response"]

"""
Result storage for the link checker.
"""

from .results import HttpStatus, LinkResult, ResultStore

__all__ = ['HttpStatus', 'LinkResult', 'ResultStore']

"""
Incident record merge-and-audit service.
"""

__version__ = "1.0.0"

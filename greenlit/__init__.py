"""
Greenlit

Story bible generation and a gated, multi-stage pre-production pipeline
served over HTTP.
"""

__version__ = "1.0.0"

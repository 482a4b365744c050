"""
Greenlit Sharing Module
"""

from .service import ShareLinkService, ACCESS_ACTIONS

__all__ = ['ShareLinkService', 'ACCESS_ACTIONS']

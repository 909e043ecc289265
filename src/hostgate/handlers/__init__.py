"""
Request handlers.

    default_page    root domain and www
    api_page        api subdomain
"""

from .pages import default_page, api_page, DEFAULT_BODY, API_BODY

__all__ = ["default_page", "api_page", "DEFAULT_BODY", "API_BODY"]

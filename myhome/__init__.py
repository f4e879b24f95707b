"""MyHome property management service.

This package provides REST API endpoints for managing users, communities,
community admins, houses and house members.
"""

__version__ = "1.0.0"

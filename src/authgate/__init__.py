# authgate — OAuth2 authorization server.
# Created: 2026-09-14

__version__ = "0.1.0"

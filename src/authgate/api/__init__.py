# authgate HTTP API layer
# Created: 2026-09-14
#
# Versioned REST endpoints mounted at /api/v1/: the OAuth2 endpoints
# (authorize, token, revoke, introspect) and client administration.

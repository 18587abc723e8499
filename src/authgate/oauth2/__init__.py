# OAuth2 token/grant engine.
# Created: 2026-09-14
#
# Credential lifecycle, grant handlers, client authentication, PKCE and
# scope checks. The HTTP surface lives in authgate.api.

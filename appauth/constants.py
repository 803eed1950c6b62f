from __future__ import annotations

import logging

LOGGER = logging.getLogger("appauth")

AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://www.googleapis.com/oauth2/v4/token"
CLIENT_ID = "511828570984-fuprh0cm7665emlne3rnf9pk34kkn86s.apps.googleusercontent.com"
REDIRECT_URI = "com.google.codelabs.appauth:/oauth2callback"
SCOPES = (
    "https://www.googleapis.com/auth/taskqueue",
    "https://www.googleapis.com/auth/taskqueue.consumer",
)

HANDLE_AUTHORIZATION_RESPONSE = "com.google.codelabs.appauth.HANDLE_AUTHORIZATION_RESPONSE"
LOGIN_HINT = "login_hint"

# Tokens this close to expiry are treated as already expired.
EXPIRY_TOLERANCE_SECONDS = 60

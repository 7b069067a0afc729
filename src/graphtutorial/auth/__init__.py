"""Authentication module for Microsoft Graph API.

Usage:
    from graphtutorial.auth import UserAuth, AppOnlyAuth

    auth = UserAuth(client_id, "common", ["user.read"], "data/token_cache.json")
    token = auth.get_access_token()
"""

from graphtutorial.auth.msal_auth import (
    AppOnlyAuth,
    DeviceCodeChallenge,
    DeviceCodeInfo,
    UserAuth,
    display_device_code,
)

__all__ = [
    "AppOnlyAuth",
    "DeviceCodeChallenge",
    "DeviceCodeInfo",
    "UserAuth",
    "display_device_code",
]

from __future__ import annotations

from enum import Enum

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"
PUBLIC_KEY_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/"
    "securetoken@system.gserviceaccount.com"
)
ISSUER_PREFIX = "https://securetoken.google.com/"

LOCALE_HEADER = "X-Firebase-Locale"


class Endpoint(Enum):
    SIGN_IN_WITH_CUSTOM_TOKEN = "accounts:signInWithCustomToken"
    TOKEN = "token"
    SIGN_UP = "accounts:signUp"
    SIGN_IN_WITH_PASSWORD = "accounts:signInWithPassword"
    SIGN_IN_WITH_IDP = "accounts:signInWithIdp"
    CREATE_AUTH_URI = "accounts:createAuthUri"
    SEND_OOB_CODE = "accounts:sendOobCode"
    RESET_PASSWORD = "accounts:resetPassword"
    UPDATE = "accounts:update"
    LOOKUP = "accounts:lookup"
    DELETE = "accounts:delete"


class ProviderId(Enum):
    PASSWORD = "password"
    APPLE = "apple.com"
    APPLE_GAME_CENTER = "gc.apple.com"
    FACEBOOK = "facebook.com"
    GITHUB = "github.com"
    GOOGLE = "google.com"
    GOOGLE_PLAY_GAMES = "playgames.google.com"
    LINKEDIN = "linkedin.com"
    MICROSOFT = "microsoft.com"
    TWITTER = "twitter.com"
    YAHOO = "yahoo.com"


class DeleteAttribute(Enum):
    DISPLAY_NAME = "DISPLAY_NAME"
    PHOTO_URL = "PHOTO_URL"


class ApiErrorCode(Enum):
    """
    Error codes reported by the identity service in `error.message`.

    Some messages carry a free-text suffix (e.g. "WEAK_PASSWORD : Password
    should be at least 6 characters"), so matching is done on the prefix.
    """

    OPERATION_NOT_ALLOWED = "OPERATION_NOT_ALLOWED"
    TOO_MANY_ATTEMPTS_TRY_LATER = "TOO_MANY_ATTEMPTS_TRY_LATER"
    INVALID_API_KEY = "INVALID_API_KEY"
    INVALID_CUSTOM_TOKEN = "INVALID_CUSTOM_TOKEN"
    INVALID_ID_TOKEN = "INVALID_ID_TOKEN"
    INVALID_REFRESH_TOKEN = "INVALID_REFRESH_TOKEN"
    INVALID_JSON_PAYLOAD_RECEIVED = "Invalid JSON payload received. Unknown name"
    INVALID_GRANT_TYPE = "INVALID_GRANT_TYPE"
    INVALID_PASSWORD = "INVALID_PASSWORD"
    INVALID_IDP_RESPONSE = "INVALID_IDP_RESPONSE"
    INVALID_CREDENTIAL_OR_PROVIDER_ID = "INVALID_CREDENTIAL_OR_PROVIDER_ID"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_LOGIN_CREDENTIALS = "INVALID_LOGIN_CREDENTIALS"
    CREDENTIAL_MISMATCH = "CREDENTIAL_MISMATCH"
    CREDENTIAL_TOO_OLD_LOGIN_AGAIN = "CREDENTIAL_TOO_OLD_LOGIN_AGAIN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    USER_DISABLED = "USER_DISABLED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    MISSING_REFRESH_TOKEN = "MISSING_REFRESH_TOKEN"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    EMAIL_NOT_FOUND = "EMAIL_NOT_FOUND"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    FEDERATED_USER_ID_ALREADY_LINKED = "FEDERATED_USER_ID_ALREADY_LINKED"
    EXPIRED_OOB_CODE = "EXPIRED_OOB_CODE"
    INVALID_OOB_CODE = "INVALID_OOB_CODE"
    ADMIN_ONLY_OPERATION = "ADMIN_ONLY_OPERATION"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_message(cls, message: str) -> "ApiErrorCode":
        for code in cls:
            if code is not cls.UNKNOWN and message.startswith(code.value):
                return code
        return cls.UNKNOWN

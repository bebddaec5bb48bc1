from enum import StrEnum


class OAuthProvider(StrEnum):
    TWITTER = "twitter"


class AuthAction(StrEnum):
    LOGIN = "login"
    LINK = "link"


class RedirectStatus(StrEnum):
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class SessionStatus(StrEnum):
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"

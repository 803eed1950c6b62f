from __future__ import annotations


class AppAuthError(RuntimeError):
    pass


class AuthorizationError(AppAuthError):
    def __init__(self, error: str, description: str | None = None) -> None:
        message = error if description is None else f"{error}: {description}"
        super().__init__(message)
        self.error = error
        self.description = description

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthorizationError):
            return NotImplemented
        return (self.error, self.description) == (other.error, other.description)

    def __hash__(self) -> int:
        return hash((self.error, self.description))

    def to_dict(self) -> dict:
        return {"error": self.error, "error_description": self.description}

    @classmethod
    def from_dict(cls, payload: dict) -> "AuthorizationError":
        if not isinstance(payload, dict):
            raise ValueError("Authorization error record must be a JSON object.")
        error = payload.get("error")
        description = payload.get("error_description")
        if not isinstance(error, str) or not error:
            raise ValueError("Authorization error record missing error.")
        if description is not None and not isinstance(description, str):
            raise ValueError("Authorization error description must be a string.")
        return cls(error, description)


class TokenRequestError(AppAuthError):
    def __init__(
        self,
        error: str,
        description: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        message = error if description is None else f"{error}: {description}"
        if status_code is not None:
            message = f"Token request failed with status {status_code}: {message}"
        super().__init__(message)
        self.error = error
        self.description = description
        self.status_code = status_code


class TokenExchangeError(AppAuthError):
    pass


class RefreshError(AppAuthError):
    pass


class StaleSessionError(AppAuthError):
    def __init__(self, message: str = "Session was signed out while the request was in flight.") -> None:
        super().__init__(message)


class RestrictionsPendingError(AppAuthError):
    def __init__(
        self,
        message: str = "Managed configuration is still pending; sign-in is blocked.",
    ) -> None:
        super().__init__(message)

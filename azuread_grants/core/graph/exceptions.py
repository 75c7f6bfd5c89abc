"""Graph API client exceptions."""


class GraphError(Exception):
    """Base exception for all Graph API client operations."""
    pass


class GraphAPIError(GraphError):
    """HTTP error from the Azure AD Graph API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class GraphAuthError(GraphError):
    """Token acquisition failed or no credentials were configured."""
    pass

class ReviewApiError(Exception):
    """Base error carrying the category label and HTTP status shown to callers."""
    category = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ReviewApiError):
    category = "invalid_input"
    status_code = 400


class UpstreamFetchError(ReviewApiError):
    """A storefront request failed. Non-retryable failures mean the app is unknown upstream."""
    category = "upstream_failure"

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable

    @property
    def status_code(self) -> int:
        return 502 if self.retryable else 404


class NoReviewsError(ReviewApiError):
    category = "nothing_to_export"
    status_code = 404


class ExportError(ReviewApiError):
    category = "export_failure"
    status_code = 500


class ExportNotFoundError(ReviewApiError):
    category = "not_found"
    status_code = 404

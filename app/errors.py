class ScanError(Exception):
    """Base class for failures that end a scan attempt.

    Every subclass carries a stable ``code`` and a user-facing ``message`` so the
    client can render a specific error and still offer a retry.
    """

    code = "SCAN_FAILED"
    status_code = 500
    message = "Something went wrong while scanning. Please try again."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.message
        super().__init__(self.detail)


class MissingCredential(ScanError):
    code = "API_KEY_MISSING"
    status_code = 503
    message = "Receipt scanning is not configured. Set the API key and try again."


class TransportFailure(ScanError):
    code = "TRANSPORT_FAILURE"
    status_code = 502
    message = "Could not reach the scanning service. Please try again."


class EmptyResponse(ScanError):
    code = "EMPTY_RESPONSE"
    status_code = 502
    message = "The scanning engine returned no data."


class MalformedResponse(ScanError):
    code = "PARSING_FAILED"
    status_code = 502
    message = "The data returned from the scanner was malformed."


class InvalidAmount(ScanError):
    code = "INVALID_AMOUNT"
    status_code = 422
    message = "Could not read a payable amount from this receipt."


class ScanInProgress(ScanError):
    code = "SCAN_IN_PROGRESS"
    status_code = 409
    message = "A scan is already running. Wait for it to finish."


class ScanSuperseded(ScanError):
    code = "SCAN_SUPERSEDED"
    status_code = 409
    message = "This scan was replaced by a newer one."

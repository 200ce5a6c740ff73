class DriveAPIError(Exception):
    """
    Raw error returned by the Drive REST API.
    Drive may return the same HTTP status for several causes, so the
    machine readable `reason` of the first error entry is kept as well.
    """

    def __init__(self, status_code: int, reason: str = "", message: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.message = message
        super().__init__(f"googleapi: Error {status_code}: {message} ({reason or 'no reason'})")

    @classmethod
    def from_response(cls, response) -> "DriveAPIError":
        reason = ""
        message = response.reason or ""
        try:
            error = response.json().get("error", {})
        except ValueError:
            error = {}
        if isinstance(error, dict):
            message = error.get("message", message)
            errors = error.get("errors") or []
            if errors:
                reason = errors[0].get("reason", "")
        return cls(response.status_code, reason, message)


class ServiceError(Exception):
    """Base class for classified storage failures."""


class InvalidCredentialsError(ServiceError):
    pass


class RequestThrottledError(ServiceError):
    pass


class ServiceInternalError(ServiceError):
    pass


class ObjectNotExistError(ServiceError):
    pass


class PermissionDeniedError(ServiceError):
    pass


class UnexpectedError(ServiceError):
    pass


class InvalidArgumentError(ServiceError, ValueError):
    pass


class ListModeInvalidError(InvalidArgumentError):
    def __init__(self, actual):
        self.actual = actual
        super().__init__(f"list mode invalid: actual {actual}")


class PairUnsupportedError(ServiceError):
    def __init__(self, pair: str):
        self.pair = pair
        super().__init__(f"pair unsupported: {pair}")


class StorageError(Exception):
    """Failure of a storage operation, carrying the classified error in `err`."""

    def __init__(self, op: str, err: Exception, storager=None, path=None):
        self.op = op
        self.err = err
        self.storager = storager
        self.path = list(path or [])
        super().__init__(f"storage: op {op}, path {self.path}, storager {storager}: {err}")


class InitError(Exception):
    def __init__(self, op: str, err: Exception, pairs=None):
        self.op = op
        self.err = err
        self.pairs = pairs
        super().__init__(f"service init: op {op}, type gdrive: {err}")


# Ref: https://developers.google.com/drive/api/guides/handle-errors
_REASON_ERRORS = {
    "authError": InvalidCredentialsError,
    "dailyLimitExceeded": RequestThrottledError,
    "rateLimitExceeded": RequestThrottledError,
    "userRateLimitExceeded": RequestThrottledError,
    "backendError": ServiceInternalError,
    "notFound": ObjectNotExistError,
    "insufficientFilePermissions": PermissionDeniedError,
    "appNotAuthorizedToFile": PermissionDeniedError,
}


def format_error(err: Exception) -> ServiceError:
    """
    Maps a raw error onto the service error taxonomy.
    The original error is kept as __cause__.
    """
    if isinstance(err, ServiceError):
        return err

    if isinstance(err, DriveAPIError):
        error_cls = _REASON_ERRORS.get(err.reason, UnexpectedError)
    else:
        error_cls = UnexpectedError

    classified = error_cls(str(err))
    classified.__cause__ = err
    return classified


def is_not_found(err: Exception) -> bool:
    if isinstance(err, ObjectNotExistError):
        return True
    if isinstance(err, DriveAPIError):
        return err.reason == "notFound" or err.status_code == 404
    return False

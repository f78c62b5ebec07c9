"""
Error types raised by the upload pipelines and the API.

Every error carries the HTTP status it maps to and a short message that is
safe to show to the client. Anything more specific goes into ``detail``,
which is only ever logged.
"""

from typing import Optional


class ClipstoreError(Exception):
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class UnauthenticatedError(ClipstoreError):
    status_code = 401
    message = "Couldn't validate credentials"


class ForbiddenError(ClipstoreError):
    status_code = 403
    message = "You are not the owner of the video"


class NotFoundError(ClipstoreError):
    status_code = 404
    message = "Video not found"


class BadRequestError(ClipstoreError):
    status_code = 400
    message = "Bad request"


class UnsupportedMediaTypeError(ClipstoreError):
    status_code = 415
    message = "Unsupported media type"


class PayloadTooLargeError(ClipstoreError):
    status_code = 413
    message = "Upload exceeds the maximum allowed size"


class ProbeError(ClipstoreError):
    status_code = 422
    message = "Couldn't inspect the uploaded video"


class RemuxError(ClipstoreError):
    status_code = 500
    message = "Couldn't process the uploaded video"


class StoreError(ClipstoreError):
    status_code = 502
    message = "Object storage request failed"


class PersistenceError(ClipstoreError):
    status_code = 500
    message = "Couldn't save the video metadata"


class InvalidPointerFormatError(ClipstoreError):
    status_code = 500
    message = "Stored video location is corrupt"

"""Erreurs métier de l'API, chacune associée à un code machine et un statut HTTP."""


class ServiceError(Exception):
    code = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "details": self.message}


class BadRequest(ServiceError):
    code = "bad_request"
    status_code = 400
    default_message = "Invalid request"


class NoFileProvided(BadRequest):
    code = "no_file"
    default_message = "No image file provided"


class MissingParameters(BadRequest):
    code = "missing_parameters"
    default_message = "Bucket and key parameters are required"


class UnsupportedMediaType(BadRequest):
    code = "unsupported_media_type"
    default_message = "Only JPEG and PNG image files are allowed"


class PayloadTooLarge(BadRequest):
    code = "payload_too_large"
    default_message = "File size too large. Max size is 5MB."


class StorageError(ServiceError):
    code = "storage_error"
    default_message = "Error storing image"


class DetectionError(ServiceError):
    code = "detection_error"
    default_message = "Error analyzing image"


class InternalError(ServiceError):
    pass

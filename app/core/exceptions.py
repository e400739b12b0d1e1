"""
Domain errors raised by the core. The API layer maps each one to a status code
in app.main; nothing here is fatal to the process.
"""


class FortiFileError(Exception):
    """Base class for all domain errors"""
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(FortiFileError):
    """Invalid input"""
    status_code = 400


class NotFoundError(FortiFileError):
    """File not found"""
    # Absent and not-yours look the same to the caller.
    status_code = 404


class InvalidCodeError(FortiFileError):
    """Invalid or expired decryption code"""
    status_code = 403


class DecryptionError(FortiFileError):
    """Decryption failed: the data, key or nonce do not match"""
    status_code = 422


class KeyFormatError(FortiFileError):
    """Malformed exported key"""
    status_code = 400


class DeliveryError(FortiFileError):
    """Mail transport rejected the message"""
    status_code = 502

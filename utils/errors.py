"""
Errors raised by the registry and the fhe layer.

Each one carries the reason string the caller gets back, the equivalent of a
contract revert message. The app turns them into json responses and rolls the
session back so no half finished change is ever committed.
"""


class RegistryError(Exception):
    status_code = 400

    def __init__(self, reason, status_code=None):
        super().__init__(reason)
        self.reason = reason
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.reason}


class InvalidRequest(RegistryError):
    status_code = 400


class AccessDenied(RegistryError):
    status_code = 403


class NotFound(RegistryError):
    status_code = 404


class InvalidState(RegistryError):
    status_code = 409


class DecryptionError(RegistryError):
    status_code = 403

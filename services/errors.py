class LoadError(Exception):
    status_code = 500

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def to_payload(self):
        payload = {"error": str(self)}
        if self.errors:
            payload["errors"] = dict(self.errors)
        return payload


class NotFound(LoadError):
    status_code = 404


class InvalidTransition(LoadError):
    status_code = 400


class ValidationError(LoadError):
    status_code = 400


class InternalError(LoadError):
    status_code = 500

# Error Types - raised by the pipeline and stores, mapped to HTTP by main.py


class SmartChairError(Exception):
    """Base class for all server-side errors"""


class InvalidInputError(SmartChairError):
    """Malformed sensors / keypoints; caller-correctable (HTTP 400)"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PersistenceError(SmartChairError):
    """Store could not save or query posture records"""


class IngestionError(SmartChairError):
    """Unexpected failure while classifying, persisting or broadcasting (HTTP 500)"""

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
        self.message = message

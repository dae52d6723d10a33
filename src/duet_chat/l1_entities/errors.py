"""Domain error types."""


class StoreError(Exception):
    """Raised when the message store rejects a read or write."""


class AIResponderError(Exception):
    """Raised when the AI responder fails or reports an error body."""


class UploadFailedError(Exception):
    """Raised when the media host cannot accept an image."""


class SessionBusyError(Exception):
    """Raised when an AI call or upload is requested while another is in flight."""

class ChatError(Exception):
    """Base class for failures reported by the chat core."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ChatError):
    """Conversation missing, inactive, or the caller is not a participant.

    The three cases are reported identically so membership does not leak.
    """

    status_code = 404

    def __init__(self, message: str = "Chat not found") -> None:
        super().__init__(message)


class InvalidArgumentError(ChatError):

    status_code = 400


class AttachmentRejectedError(InvalidArgumentError):
    """Uploaded file failed the size or type checks."""


class ForbiddenError(ChatError):

    status_code = 403


class UpstreamFailureError(ChatError):
    """Identity or blob storage collaborator failed."""

    status_code = 502

"""Error taxonomy for Cardsmith.

Rendering never raises these for layer-level problems; they surface only at
the store, decode, encode and archive boundaries.
"""


class CardsmithError(Exception):
    """Base class for all Cardsmith errors."""
    pass


class MissingAssetError(CardsmithError):
    """A card references an image asset that is not in the asset store."""

    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"Image asset not found: {image_id}")


class DecodeFailureError(CardsmithError):
    """Stored asset bytes could not be decoded into a bitmap."""

    def __init__(self, image_id: str, reason: str = ""):
        self.image_id = image_id
        self.reason = reason
        message = f"Failed to decode image asset {image_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EncodeFailureError(CardsmithError):
    """A rendered surface could not be serialized to PNG."""
    pass


class ArchiveFailureError(CardsmithError):
    """The export archive could not be written or finalized."""
    pass


class ExportCancelledError(CardsmithError):
    """Raised when an export is cancelled by the caller."""
    pass


class UnknownTemplateError(CardsmithError):
    """Raised when a template revision name is not known."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown card template: {name}")


class CardNotFoundError(CardsmithError):
    """Raised when a card id is not in the card store."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card not found: {card_id}")

"""Card record store."""

from cardsmith.models.card import CardRecord
from cardsmith.services.file_store import JsonFileStore


class CardStore(JsonFileStore[CardRecord]):
    """Stores card records as JSON files, in deck order."""

    model = CardRecord
    kind = "card"

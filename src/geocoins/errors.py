"""Error kinds raised while decoding persisted game state."""


class GeoCoinsError(ValueError):
    """Base class for geocoins failures."""


class CorruptCoinError(GeoCoinsError):
    """Raised when persisted coin text is not of the form ``x:y#serial``."""


class CorruptSnapshotError(GeoCoinsError):
    """Raised when a persisted snapshot cannot be parsed or validated."""

class StorageNotConfigured(Exception):
    """Raised when the selected storage backend cannot accept uploads."""

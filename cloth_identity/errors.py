"""Exception taxonomy for cloth identity extraction, hashing and storage."""


class ClothIdentityError(Exception):
    """Base class for all errors raised by this package."""


class DecodeError(ClothIdentityError):
    """Image is missing, empty, corrupt or otherwise undecodable."""


class GeometryError(ClothIdentityError):
    """Degenerate image or reference dimensions (zero height, zero area)."""


class InvalidDescriptorError(ClothIdentityError):
    """Descriptor set does not have the fixed key sets and lengths."""


class MissingFeatureError(InvalidDescriptorError):
    """A descriptor set lacks a required category, key or sequence entry."""

    def __init__(self, category: str, key: str):
        self.category = category
        self.key = key
        super().__init__(f"Missing feature '{key}' in category '{category}'")


class HashAlgorithmUnavailable(ClothIdentityError):
    """The configured digest algorithm is not provided by this interpreter."""


class StorageError(ClothIdentityError):
    """The record store could not read or write a record."""

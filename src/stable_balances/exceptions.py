from __future__ import annotations


class AddressValidationError(ValueError):
    """Base class for wallet address input errors."""


class MissingAddressError(AddressValidationError):
    def __init__(self) -> None:
        super().__init__("Wallet address is required")


class InvalidAddressError(AddressValidationError):
    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__("Invalid Ethereum address format")

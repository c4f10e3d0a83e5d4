"""
addressing.py - IPv4 Address Blocks

Sequential address assignment within one network block.

Assignment order is registration order: the k-th interface passed to
assign() receives the k-th host address of the block (base + 1, base + 2, ...).
Two blocks built from the same base/mask with the same call order hand out
identical addresses.
"""

import ipaddress
from typing import List, Set, TYPE_CHECKING

if TYPE_CHECKING:
    from wlansim.network.node import WirelessInterface


class AddressError(ValueError):
    """Raised for invalid address block configuration."""
    pass


class AddressExhaustedError(AddressError):
    """Raised when a block has no host addresses left."""
    pass


class AddressBlock:
    """
    One IPv4 network with a monotonic host counter.

    Usage:
        block = AddressBlock("192.168.1.0", "255.255.255.0")
        block.assign(interfaces)   # .1, .2, .3 ...
    """

    def __init__(self, base: str, mask: str, first_host: int = 1):
        try:
            self.network = ipaddress.IPv4Network(f"{base}/{mask}", strict=True)
        except ValueError as e:
            raise AddressError(f"Invalid address block {base}/{mask}: {e}")

        if first_host < 1:
            raise AddressError(f"first_host must be at least 1, got {first_host}")

        self.base = base
        self.mask = mask
        self.first_host = first_host
        self._next_host = first_host
        self._assigned: Set[ipaddress.IPv4Address] = set()

    def __str__(self):
        return str(self.network)

    @property
    def prefix_length(self) -> int:
        return self.network.prefixlen

    def contains(self, address: str) -> bool:
        return ipaddress.IPv4Address(address) in self.network

    def new_address(self) -> str:
        """
        Allocate the next host address.

        Raises:
            AddressExhaustedError: If the block has no host addresses left
        """
        address = self.network.network_address + self._next_host
        if address >= self.network.broadcast_address:
            raise AddressExhaustedError(f"Address block {self.network} is exhausted")
        if address in self._assigned:
            raise AddressError(f"Address {address} already assigned in {self.network}")

        self._next_host += 1
        self._assigned.add(address)
        return str(address)

    def assign(self, interfaces: List['WirelessInterface']) -> List[str]:
        """
        Assign one address per interface, in list order.

        Returns:
            Addresses in the same order as the interfaces
        """
        addresses = []
        for interface in interfaces:
            address = self.new_address()
            interface.set_address(address, self.network.prefixlen)
            addresses.append(address)
        return addresses

    def assigned_count(self) -> int:
        return len(self._assigned)

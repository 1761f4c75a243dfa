from eth_utils import is_address, to_checksum_address

from utils.errors import InvalidRequest


def normalize_address(value):
    """
    Turn any spelling of a wallet address into its checksummed form.

    Addresses are compared case-insensitively by wallets, so everything stored
    or compared in the registry goes through here first.
    """
    if not isinstance(value, str) or not is_address(value):
        raise InvalidRequest('Invalid address')
    return to_checksum_address(value)


def same_address(first, second):
    if not isinstance(first, str) or not isinstance(second, str) or not first or not second:
        return False
    return first.lower() == second.lower()

"""Personal message (EIP-191) signature helpers."""

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_checksum_address


def assemble_signature(v: int, r: str, s: str) -> str:
    """Build a 0x r||s||v signature from the device's components.

    The device reports v as 27/28; the recovery id is stored as two hex
    digits (``00``/``01``).
    """
    recovery = format(int(v) - 27, "x")
    if len(recovery) < 2:
        recovery = f"0{recovery}"
    return f"0x{r}{s}{recovery}"


def recover_personal_signer(message: str, signature: str) -> str:
    """Recover the checksummed address that signed a personal message.

    Hex-prefixed messages are treated as raw bytes, anything else as text.
    """
    if message.startswith(("0x", "0X")):
        signable = encode_defunct(hexstr=message)
    else:
        signable = encode_defunct(text=message)

    return to_checksum_address(Account.recover_message(signable, signature=signature))

"""Transaction and message signing helpers.

The device produces every signature; this package only prepares the
payloads sent to the bridge and verifies what comes back.
"""

from ledger_keyring.signing.message import assemble_signature, recover_personal_signer
from ledger_keyring.signing.transaction import LegacyTransaction, SignableTransaction

__all__ = [
    "LegacyTransaction",
    "SignableTransaction",
    "assemble_signature",
    "recover_personal_signer",
]

"""Persisted keyring configuration and discovery results.

Only the snapshot below is ever persisted by the wallet manager. It
NEVER contains key material: the extended public key is session state
and is re-read from the device after every restart.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class KeyringSnapshot(BaseModel):
    """Serialized keyring configuration.

    Keys use the camelCase names wallet managers store:
    ``{hdPath, accounts, accountIndexes, bridgeUrl}``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    hd_path: Optional[str] = Field(None, alias="hdPath", description="Account root path")
    accounts: list[str] = Field(default_factory=list, description="Checksummed addresses")
    account_indexes: dict[str, int] = Field(
        default_factory=dict, alias="accountIndexes", description="Address -> derivation index"
    )
    bridge_url: Optional[str] = Field(None, alias="bridgeUrl", description="Bridge page URL")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclass
class Account:
    """One address shown during account discovery.

    Balance lookups are left to the wallet manager, so ``balance`` is
    always None when produced by the keyring.
    """

    address: str
    index: int
    balance: Optional[Decimal] = None

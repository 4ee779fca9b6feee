"""Request bodies accepted by the inventory endpoints."""
from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

# strict numbers keep JSON booleans from being read as 1 / 0
Quantity = Optional[Union[StrictInt, StrictFloat, str]]


class IssueRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_code: Optional[str] = Field(default=None, alias="itemCode")
    issuance_qty: Quantity = Field(default=None, alias="issuanceQty")
    issued_by: Optional[str] = Field(default=None, alias="issuedBy")
    activity: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None


class ReceiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_code: Optional[str] = Field(default=None, alias="itemCode")
    receipt_qty: Quantity = Field(default=None, alias="receiptQty")
    received_by: Optional[str] = Field(default=None, alias="receivedBy")
    notes: Optional[str] = None
    location: Optional[str] = None

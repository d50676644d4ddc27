"""
UTXO Indexer - API Schemas
============================
Pydantic models for API responses.
"""

from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# BASE SCHEMAS
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    message: str = Field(..., description="Service description")
    version: str = Field(..., description="Indexer version")
    current_height: int = Field(..., description="Current ledger height")


class ErrorResponse(BaseModel):
    """Error response"""
    error: str = Field(..., description="Error summary")
    message: Optional[str] = Field(None, description="Failure reason")
    code: Optional[str] = Field(None, description="Error code")


class SuccessResponse(BaseModel):
    """Mutating operation accepted"""
    success: bool = True
    message: str


# ============================================================================
# LEDGER SCHEMAS
# ============================================================================

class BalanceResponse(BaseModel):
    """Balance response"""
    address: str
    balance: int = Field(..., ge=0)


class BlockResponse(BaseModel):
    """Stored block (wire format)"""
    id: str
    height: int
    transactions: List[Dict[str, Any]]


class OutputResponse(BaseModel):
    """Stored output, spent or unspent"""
    model_config = ConfigDict(populate_by_name=True)

    tx_id: str = Field(..., alias="txId")
    index: int
    address: str
    value: int
    spent: bool
    spending_tx_id: Optional[str] = Field(None, alias="spendingTxId")
    produced_at_height: int = Field(..., alias="producedAtHeight")


class UtxoListResponse(BaseModel):
    """Unspent outputs of an address"""
    address: str
    utxos: List[OutputResponse]
    total: int


__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "SuccessResponse",
    "BalanceResponse",
    "BlockResponse",
    "OutputResponse",
    "UtxoListResponse",
]

"""Response schemas for Transfer API"""

from pydantic import BaseModel
from src.app.use_cases.transfers.dtos import TransferResponseDTO


class TransferEnvelopeSchema(BaseModel):
    """Single transfer wrapped as {"transfer": {...}}"""

    transfer: TransferResponseDTO

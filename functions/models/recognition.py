"""Request and response schemas for the AI recognition functions."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.entities import TransactionCategory

DEFAULT_RECEIPT_CONTEXT = (
    "Extract transaction details from this receipt. "
    "Determine if it is income (like rent) or an expense."
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecognizeTransactionInput(_CamelModel):
    photo_data_uri: str = Field(..., pattern=r"^data:[\w.+-]+/[\w.+-]+;base64,")
    context: str = DEFAULT_RECEIPT_CONTEXT


class RecognizedTransaction(BaseModel):
    title: str = Field(description="A short title for the transaction, e.g. the merchant or purpose.")
    amount: float = Field(description="The total amount of the transaction.")
    date: Optional[str] = Field(None, description="The transaction date in ISO 8601 format (YYYY-MM-DD).")
    category: TransactionCategory = Field(description="The closest matching ledger category.")
    merchant: Optional[str] = Field(None, description="The merchant or payer name if visible.")


class TenantInfo(_CamelModel):
    name: str = Field(..., min_length=1)
    rent_amount: float = Field(..., ge=0)


class RecognizeTenantPaymentInput(_CamelModel):
    photo_data_uri: str = Field(..., pattern=r"^data:[\w.+-]+/[\w.+-]+;base64,")
    tenants: list[TenantInfo]


class RecognizedTenantPayment(BaseModel):
    tenant_name: str = Field(description="The name of the tenant identified from the screenshot.")
    amount: float = Field(description="The payment amount identified from the screenshot.")

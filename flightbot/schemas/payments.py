from pydantic import BaseModel, Field
from typing import Optional

from flightbot.schemas.booking import PaymentMethod


class CardIn(BaseModel):
    # Raw card input collected in chat. Only the sandbox and test merchants should ever see this.
    number: str
    expiry: str
    cvv: str
    holderName: str


class Customer(BaseModel):
    email: str = Field(default="")
    name: str = Field(default="")
    phone: str = Field(default="")


class PaymentRequest(BaseModel):
    bookingId: str
    paymentMethod: PaymentMethod
    amount: int  # minor units
    currency: str = "USD"
    card: Optional[CardIn] = None
    customer: Customer = Field(default_factory=Customer)
    billingAddress: str = ""
    orderNumber: str = ""
    description: str = ""
    idempotencyKey: str
    locationId: str = ""


class PaymentResult(BaseModel):
    success: bool
    paymentId: Optional[str] = None
    id: Optional[str] = None
    transactionId: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    provider: str = ""

    @property
    def reference(self) -> Optional[str]:
        return self.paymentId or self.id

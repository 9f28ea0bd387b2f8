from pydantic import BaseModel
from typing import Optional

class PurchaseRequest(BaseModel):
    gameId: str
    productId: str
    userGameId: str
    paymentMethod: str
    userVoucherId: Optional[str] = None

class TransactionResponse(BaseModel):
    id: str
    gameId: str
    gameName: Optional[str] = None
    productId: str
    productName: Optional[str] = None
    userGameId: str
    paymentMethod: str
    paymentMethodLabel: str
    totalPrice: int
    pointsEarned: int
    userVoucherId: Optional[str] = None
    status: str
    createdAt: Optional[str] = None

class VoucherResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    discountPercentage: int
    pointsRequired: int

class UserVoucherResponse(BaseModel):
    id: str
    voucherId: str
    pointsSpent: int
    state: str
    isUsed: bool
    usedAt: Optional[str] = None
    createdAt: Optional[str] = None
    voucher: VoucherResponse

class RedemptionResponse(BaseModel):
    loyaltyPoints: int
    userVoucher: UserVoucherResponse

class ProfileUpdate(BaseModel):
    name: str

class ProfileResponse(BaseModel):
    id: str
    name: Optional[str] = None
    loyaltyPoints: int

class VaultResponse(BaseModel):
    loyaltyPoints: int
    successfulTransactions: int
    vouchers: list[VoucherResponse]
    userVouchers: list[UserVoucherResponse]
    transactions: list[TransactionResponse]

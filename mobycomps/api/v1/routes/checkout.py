from typing import Annotated
from fastapi import APIRouter, Depends, status, Header, Response
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.auth import get_current_user_with_roles
from mobycomps.core.dependencies.holder import Holder, get_holder
from mobycomps.domain.payments.schemas import PaymentReadDTO, PaymentConfirmDTO, SettleRequestDTO, SettlementReadDTO
from mobycomps.domain.users.models import User
from mobycomps.services import checkout_service

router = APIRouter(prefix="/checkout", tags=["checkout"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
holder_dependency = Annotated[Holder, Depends(get_holder)]


@router.post(
    "/payments",
    status_code=status.HTTP_201_CREATED,
    response_model=PaymentReadDTO
)
async def start_payment(
        db: db_dependency,
        holder: holder_dependency,
        response: Response,
        idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None
):
    user_id = holder.user.id if holder.user else None
    payment = await checkout_service.start_payment(db, holder.ref, user_id, idempotency_key)
    response.headers["Location"] = f"/checkout/payments/{payment.payment_ref}"
    return payment


@router.get(
    "/payments/{payment_ref}",
    status_code=status.HTTP_200_OK,
    response_model=PaymentReadDTO
)
async def get_payment(payment_ref: str, db: db_dependency, holder: holder_dependency):
    return await checkout_service.get_payment(db, payment_ref, holder.ref)


@router.post(
    "/payments/{payment_ref}/confirm",
    status_code=status.HTTP_200_OK,
    response_model=PaymentReadDTO
)
async def confirm_payment(payment_ref: str, schema: PaymentConfirmDTO, db: db_dependency, holder: holder_dependency):
    return await checkout_service.confirm_payment(db, payment_ref, holder.ref, schema.success)


@router.post(
    "/settle",
    status_code=status.HTTP_200_OK,
    response_model=SettlementReadDTO
)
async def settle(
        schema: SettleRequestDTO,
        db: db_dependency,
        holder: holder_dependency,
        user: Annotated[User, Depends(get_current_user_with_roles())]
):
    return await checkout_service.settle(db, schema.payment_ref, holder.ref, user.id)

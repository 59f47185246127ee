from typing import Annotated
from fastapi import APIRouter, Depends, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from mobycomps.core.database import get_db
from mobycomps.core.dependencies.holder import Holder, get_holder
from mobycomps.domain.cart.schemas import CartReadDTO, CartItemAddDTO, CartItemReadDTO
from mobycomps.services import cart_service

router = APIRouter(prefix="/cart", tags=["cart"])
db_dependency = Annotated[AsyncSession, Depends(get_db)]
holder_dependency = Annotated[Holder, Depends(get_holder)]


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    response_model=CartReadDTO
)
async def get_cart(db: db_dependency, holder: holder_dependency):
    return await cart_service.view_cart(db, holder.ref)


@router.post(
    "/items",
    status_code=status.HTTP_201_CREATED,
    response_model=CartItemReadDTO
)
async def add_item(schema: CartItemAddDTO, db: db_dependency, holder: holder_dependency, response: Response):
    item, _, _ = await cart_service.add_item(db, schema.competition_id, schema.numbers, holder.ref)
    response.headers["Location"] = "/cart"
    return cart_service.item_line(item)


@router.delete(
    "/items/{cart_item_id}",
    status_code=status.HTTP_204_NO_CONTENT
)
async def remove_item(cart_item_id: int, db: db_dependency, holder: holder_dependency):
    await cart_service.remove_item(db, cart_item_id, holder.ref)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT
)
async def clear_cart(db: db_dependency, holder: holder_dependency):
    await cart_service.clear_cart(db, holder.ref)

"""Purchase record API."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.models.purchase import Purchase
from app.schemas.purchase import PurchaseCreate, PurchaseResponse, PurchaseUpdate
from app.utils.crud import CRUDOperations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/purchases", tags=["purchases"])

purchase_crud = CRUDOperations[Purchase, PurchaseCreate, PurchaseUpdate](Purchase)


@router.post("", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase(
    data: PurchaseCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    purchase = await purchase_crud.create(db, data)
    logger.info("Created purchase %s for product %s", purchase.id, purchase.product)
    return purchase


@router.get("", response_model=list[PurchaseResponse])
async def list_purchases(db: Annotated[AsyncSession, Depends(get_db)]):
    return await purchase_crud.get_multi(db, order_by=Purchase.created_at.asc())


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(
    purchase_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await purchase_crud.get_or_404(db, purchase_id, "Purchase")


@router.put("/{purchase_id}", response_model=PurchaseResponse)
async def update_purchase(
    purchase_id: UUID,
    data: PurchaseUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    purchase = await purchase_crud.get_or_404(db, purchase_id, "Purchase")
    return await purchase_crud.update(db, purchase, data)


@router.delete("/{purchase_id}")
async def delete_purchase(
    purchase_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await purchase_crud.get_or_404(db, purchase_id, "Purchase")
    await purchase_crud.delete(db, purchase_id)
    return {"id": str(purchase_id)}

"""
API endpoints для курьеров (только админка).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.auth import SessionUser, require_admin
from app.db.database import get_db
from app.db.models import Driver, Order
from app.schemas.driver import DriverCreate, DriverOut, DriverUpdate

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("", response_model=List[DriverOut])
def list_drivers(
    db: Session = Depends(get_db),
    active: bool = Query(False, description="Только активные курьеры"),
):
    stmt = select(Driver)
    if active:
        stmt = stmt.where(Driver.is_active.is_(True))
    return db.scalars(stmt.order_by(Driver.name)).all()


@router.post("", response_model=DriverOut, status_code=status.HTTP_201_CREATED)
def create_driver(
    payload: DriverCreate,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    driver = Driver(**payload.model_dump())
    db.add(driver)
    db.commit()
    db.refresh(driver)
    logger.info(f"Driver {driver.id} created by {admin.kind}:{admin.id}")
    return driver


@router.patch("/{driver_id}", response_model=DriverOut)
def update_driver(
    driver_id: str,
    payload: DriverUpdate,
    db: Session = Depends(get_db),
):
    driver = db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(404, detail="Driver not found")

    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise HTTPException(400, detail="No fields to update")
    for field, value in data.items():
        setattr(driver, field, value)
    db.commit()
    db.refresh(driver)
    return driver


@router.delete("/{driver_id}")
def delete_driver(
    driver_id: str,
    db: Session = Depends(get_db),
    admin: SessionUser = Depends(require_admin),
):
    """Удалить курьера. Назначенные заказы остаются без курьера."""
    driver = db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(404, detail="Driver not found")

    db.execute(update(Order).where(Order.driver_id == driver_id).values(driver_id=None))
    db.delete(driver)
    db.commit()
    logger.info(f"Driver {driver_id} deleted by {admin.kind}:{admin.id}")
    return {"success": True}

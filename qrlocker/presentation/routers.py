from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from qrlocker.core.repositories.store_gateway import StoreGateway
from qrlocker.core.use_cases.get_locker_status import NotFoundError, ValidationError
from qrlocker.core.use_cases.process_access_event import DataIntegrityError, LookupFailure
from qrlocker.infrastructure.database import SessionLocal
from qrlocker.schemas.models import LockerStatus
from qrlocker.services.qrlocker_service import (
    build_gateway,
    get_locker_status_service,
    list_lockers_service,
)

router = APIRouter()


def get_gateway() -> StoreGateway:
    return build_gateway(SessionLocal)


@router.get("/lockers", response_model=list[LockerStatus])
async def get_lockers(gateway: StoreGateway = Depends(get_gateway)) -> list[LockerStatus]:
    """
    List every locker with its current status
    """
    try:
        return await list_lockers_service(gateway)
    except LookupFailure as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/lockers/{locker_number}", response_model=LockerStatus)
async def get_lockers_locker_number(locker_number: int, gateway: StoreGateway = Depends(get_gateway)) -> LockerStatus:
    """
    Get locker status

    Returns:
      - 404 if the locker has no store row
      - 422 if the number is outside the configured range
      - 500 if the stored row has an invalid status
      - 503 if the store cannot be reached
    """
    try:
        return await get_locker_status_service(locker_number, gateway)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataIntegrityError as e:
        raise HTTPException(status_code=500, detail=f"Invalid locker record: {e}")
    except LookupFailure as e:
        raise HTTPException(status_code=503, detail=str(e))

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from ticketdesk.core.errors import ConstraintViolationError
from ticketdesk.dependencies.auth import CurrentActor
from ticketdesk.dependencies.tickets import get_directory
from ticketdesk.directory.models import UserRole
from ticketdesk.directory.repository import DirectoryRepository

router = APIRouter(prefix="/directory", tags=["directory"])

DirectoryDep = Annotated[DirectoryRepository, Depends(get_directory)]


class CustomerCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str | None = None
    address: str | None = None
    company: str | None = None
    sla_hours: int | None = Field(default=None, gt=0)
    is_active: bool = True


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str | None
    address: str | None
    company: str | None
    sla_hours: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserGroupCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    can_view_all_tickets: bool = False
    can_edit_all_tickets: bool = False
    can_delete_tickets: bool = False
    can_manage_users: bool = False


class UserGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    can_view_all_tickets: bool
    can_edit_all_tickets: bool
    can_delete_tickets: bool
    can_manage_users: bool
    created_at: datetime


class UserCreateRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole
    group_id: int | None = None
    is_active: bool = True


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: UserRole
    group_id: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MasterDataCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    is_active: bool = True


class MasterDataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    is_active: bool
    created_at: datetime


def _conflict(exc: ConstraintViolationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreateRequest, directory: DirectoryDep, _: CurrentActor
) -> CustomerResponse:
    try:
        customer = await directory.create_customer(**payload.model_dump())
    except ConstraintViolationError as exc:
        raise _conflict(exc) from exc
    return CustomerResponse.model_validate(customer)


@router.get("/customers", response_model=list[CustomerResponse])
async def list_customers(directory: DirectoryDep, _: CurrentActor) -> list[CustomerResponse]:
    return [CustomerResponse.model_validate(customer) for customer in await directory.list_customers()]


@router.post("/groups", response_model=UserGroupResponse, status_code=status.HTTP_201_CREATED)
async def create_user_group(
    payload: UserGroupCreateRequest, directory: DirectoryDep, _: CurrentActor
) -> UserGroupResponse:
    try:
        group = await directory.create_user_group(**payload.model_dump())
    except ConstraintViolationError as exc:
        raise _conflict(exc) from exc
    return UserGroupResponse.model_validate(group)


@router.get("/groups", response_model=list[UserGroupResponse])
async def list_user_groups(directory: DirectoryDep, _: CurrentActor) -> list[UserGroupResponse]:
    return [UserGroupResponse.model_validate(group) for group in await directory.list_user_groups()]


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, directory: DirectoryDep, _: CurrentActor) -> UserResponse:
    try:
        user = await directory.create_user(**payload.model_dump())
    except ConstraintViolationError as exc:
        raise _conflict(exc) from exc
    return UserResponse.model_validate(user)


@router.get("/users", response_model=list[UserResponse])
async def list_users(directory: DirectoryDep, _: CurrentActor) -> list[UserResponse]:
    return [UserResponse.model_validate(user) for user in await directory.list_users()]


@router.post("/cases", response_model=MasterDataResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket_case(
    payload: MasterDataCreateRequest, directory: DirectoryDep, _: CurrentActor
) -> MasterDataResponse:
    try:
        entry = await directory.create_ticket_case(**payload.model_dump())
    except ConstraintViolationError as exc:
        raise _conflict(exc) from exc
    return MasterDataResponse.model_validate(entry)


@router.get("/cases", response_model=list[MasterDataResponse])
async def list_ticket_cases(directory: DirectoryDep, _: CurrentActor) -> list[MasterDataResponse]:
    return [MasterDataResponse.model_validate(entry) for entry in await directory.list_ticket_cases()]


@router.post("/pending-reasons", response_model=MasterDataResponse, status_code=status.HTTP_201_CREATED)
async def create_pending_reason(
    payload: MasterDataCreateRequest, directory: DirectoryDep, _: CurrentActor
) -> MasterDataResponse:
    try:
        entry = await directory.create_pending_reason(
            reason=payload.name, description=payload.description, is_active=payload.is_active
        )
    except ConstraintViolationError as exc:
        raise _conflict(exc) from exc
    return MasterDataResponse.model_validate(entry)


@router.get("/pending-reasons", response_model=list[MasterDataResponse])
async def list_pending_reasons(directory: DirectoryDep, _: CurrentActor) -> list[MasterDataResponse]:
    return [MasterDataResponse.model_validate(entry) for entry in await directory.list_pending_reasons()]


@router.post("/closing-reasons", response_model=MasterDataResponse, status_code=status.HTTP_201_CREATED)
async def create_closing_reason(
    payload: MasterDataCreateRequest, directory: DirectoryDep, _: CurrentActor
) -> MasterDataResponse:
    try:
        entry = await directory.create_closing_reason(
            reason=payload.name, description=payload.description, is_active=payload.is_active
        )
    except ConstraintViolationError as exc:
        raise _conflict(exc) from exc
    return MasterDataResponse.model_validate(entry)


@router.get("/closing-reasons", response_model=list[MasterDataResponse])
async def list_closing_reasons(directory: DirectoryDep, _: CurrentActor) -> list[MasterDataResponse]:
    return [MasterDataResponse.model_validate(entry) for entry in await directory.list_closing_reasons()]

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from packages.shared.schemas.order_v1 import CustomerV1
from services.api.app.models.customer import CustomerProfileRequest
from services.api.app.routers.errors import raise_http_error
from services.api.app.services.customer_service import CustomerNotFoundError, CustomerService
from services.api.app.services.docstore_base import DocumentStoreError
from services.api.app.services.docstore_factory import get_document_store

router = APIRouter()


@router.get("/v1/customers/{email}", response_model=CustomerV1)
def get_customer(email: str) -> CustomerV1:
    try:
        customer = CustomerService(get_document_store()).find_by_email(email)
    except DocumentStoreError as e:
        raise_http_error(e)

    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.put("/v1/customers/{email}", response_model=CustomerV1)
def upsert_customer_profile(email: str, payload: CustomerProfileRequest) -> CustomerV1:
    service = CustomerService(get_document_store())
    try:
        customer = service.find_or_create(email, name=payload.name, phone=payload.phone)
        return service.update_profile(customer.id, payload.model_dump(exclude_unset=True))
    except (CustomerNotFoundError, DocumentStoreError) as e:
        raise_http_error(e)

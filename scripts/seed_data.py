from __future__ import annotations

import argparse

from packages.shared.schemas.address_v1 import AddressInputV1
from services.api.app.db.init_db import init_db
from services.api.app.services.address_service import AddressService
from services.api.app.services.customer_service import CustomerService
from services.api.app.services.docstore_factory import get_document_store


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo storefront customer")
    parser.add_argument("--user-id", default="u-1")
    parser.add_argument("--email", default="demo@example.com")
    parser.add_argument("--name", default="Demo Customer")
    parser.add_argument("--phone", default="+15555550100")
    args = parser.parse_args()

    init_db()

    store = get_document_store()
    if store.backend == "memory":
        print("STOREFRONT_DOCSTORE=memory; seeded data will not outlive this process")

    customer = CustomerService(store).find_or_create(args.email, name=args.name, phone=args.phone)

    addresses = AddressService(store)
    if not addresses.list_addresses(args.user_id):
        addresses.create_address(
            args.user_id,
            AddressInputV1(
                name=args.name,
                street="1 Market St",
                city="San Francisco",
                state="CA",
                zip_code="94105",
                phone=args.phone,
                is_default=True,
            ),
        )

    print(f"Seeded customer={customer.id} user={args.user_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from orderflow import create_app
from orderflow.extensions import db
from orderflow.models import User, UserRole
from orderflow.services.checkout import build_checkout_request, create_order

app = create_app()

with app.app_context():
    # Create users (if not exist)
    users_data = [
        {"email": "admin@example.com", "role": UserRole.ADMIN},
        {"email": "staff1@example.com", "role": UserRole.STAFF},
        {"email": "customer1@example.com", "role": UserRole.CUSTOMER},
    ]

    users = {}
    for user_data in users_data:
        user = User.query.filter_by(email=user_data["email"]).first()
        if not user:
            user = User(email=user_data["email"], role=user_data["role"])
            db.session.add(user)
            db.session.flush()
            print(f"Created user: {user_data['email']}")
        users[user_data["email"]] = user
    db.session.commit()

    customer = users["customer1@example.com"]
    if customer.orders.count():
        print("Demo orders already present, skipping checkout seed")
    else:
        address = {
            "street": "12 Nguyen Hue",
            "ward": "Ben Nghe",
            "district": "District 1",
            "province": "Ho Chi Minh City",
            "zip_code": "700000",
            "country": "Vietnam",
        }
        items = [
            {
                "product_variant_id": 1,
                "quantity": 2,
                "unit_price": 50,
                "total_price": 100,
                "discount_value": 10,
            },
            {
                "product_variant_id": 2,
                "quantity": 1,
                "unit_price": 50,
                "total_price": 50,
            },
        ]
        for method in ("COD", "BANK_TRANSFER"):
            order = create_order(
                db.session,
                build_checkout_request({
                    "user_id": customer.id,
                    "payment_method": method,
                    "address": address,
                    "items": items,
                }),
            )
            print(
                f"Created {method} order {order.id}: "
                f"total={order.total_amount} "
                f"shipments={len(order.shipments)}"
            )

from orderflow.extensions import db
from datetime import datetime
from sqlalchemy import CheckConstraint
import enum
import json


class UserRole(enum.Enum):
    CUSTOMER = 'CUSTOMER'
    STAFF = 'STAFF'
    ADMIN = 'ADMIN'


class OrderStatus(enum.Enum):
    PENDING = 'PENDING'
    PROCESSING = 'PROCESSING'
    SHIPPED = 'SHIPPED'
    DELIVERED = 'DELIVERED'
    CANCELLED = 'CANCELLED'
    RETURNED = 'RETURNED'


class PaymentStatus(enum.Enum):
    PENDING = 'PENDING'
    PAID = 'PAID'
    FAILED = 'FAILED'
    REFUNDED = 'REFUNDED'


class PaymentMethod(enum.Enum):
    COD = 'COD'
    VNPAY = 'VNPAY'
    MOMO = 'MOMO'
    ZALOPAY = 'ZALOPAY'
    CREDIT_CARD = 'CREDIT_CARD'
    BANK_TRANSFER = 'BANK_TRANSFER'


class ShipmentStatus(enum.Enum):
    WAITING_FOR_PICKUP = 'WAITING_FOR_PICKUP'
    IN_TRANSIT = 'IN_TRANSIT'
    OUT_FOR_DELIVERY = 'OUT_FOR_DELIVERY'
    DELIVERED = 'DELIVERED'
    DELIVERED_FAILED = 'DELIVERED_FAILED'
    RETURNED_TO_SENDER = 'RETURNED_TO_SENDER'


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    role = db.Column(
        db.Enum(UserRole),
        nullable=False,
        default=UserRole.CUSTOMER)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)

    addresses = db.relationship(
        'Address',
        backref='user',
        lazy='dynamic')
    orders = db.relationship(
        'Order',
        foreign_keys='Order.user_id',
        backref='user',
        lazy='dynamic')

    def __repr__(self):
        return f'<User {self.email}>'


class Address(db.Model):
    __tablename__ = 'addresses'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='CASCADE'),
        nullable=True,
        index=True)
    street = db.Column(db.String(255), nullable=False)
    ward = db.Column(db.String(100), nullable=False)
    district = db.Column(db.String(100), nullable=False)
    province = db.Column(db.String(100), nullable=False)
    zip_code = db.Column(db.String(20), nullable=False)
    country = db.Column(db.String(100), nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Address {self.id} for user {self.user_id}>'


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=False,
        index=True)
    # Each order owns the address created for it at checkout.
    shipping_address_id = db.Column(
        db.Integer,
        db.ForeignKey('addresses.id'),
        unique=True,
        nullable=False)
    process_by_staff_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True,
        index=True)
    order_date = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    status = db.Column(
        db.Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True)
    sub_total = db.Column(db.Numeric(12, 2), nullable=False)
    shipping_fee = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency_unit = db.Column(db.String(10), nullable=False, default='VND')
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    # Relationships
    shipping_address = db.relationship('Address')
    process_by_staff = db.relationship(
        'User', foreign_keys=[process_by_staff_id])
    items = db.relationship(
        'OrderItem',
        backref='order',
        order_by='OrderItem.id',
        cascade='all, delete-orphan')
    payment = db.relationship(
        'Payment',
        backref='order',
        uselist=False,
        cascade='all, delete-orphan')
    shipments = db.relationship(
        'Shipment',
        backref='order',
        order_by='Shipment.id',
        cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Order {self.id} status={self.status}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    product_variant_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    # Order snapshot prices, supplied by the checkout caller.
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    discount_value = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency_unit = db.Column(db.String(10), nullable=False, default='VND')
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_order_quantity_positive'),
    )

    def __repr__(self):
        return (
            f"<OrderItem {self.id} order={self.order_id} "
            f"variant={self.product_variant_id}>"
        )


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        unique=True,
        nullable=False)
    transaction_id = db.Column(db.String(100), unique=True, nullable=False)
    payment_method = db.Column(
        db.Enum(PaymentMethod),
        default=PaymentMethod.COD,
        nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(
        db.Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False)
    payment_date = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    currency_unit = db.Column(db.String(10), nullable=False, default='VND')
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    def __repr__(self):
        return f'<Payment {self.id} status={self.status}>'


class Shipment(db.Model):
    __tablename__ = 'shipments'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'orders.id',
            ondelete='CASCADE'),
        nullable=False,
        index=True)
    process_by_staff_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id'),
        nullable=True)
    carrier = db.Column(db.String(100), nullable=False)
    tracking_number = db.Column(db.String(100), unique=True, nullable=False)
    # at shop, estimated time the parcel leaves
    estimated_ship_date = db.Column(db.DateTime, nullable=False)
    # at customer, estimated arrival time
    estimated_delivery = db.Column(db.DateTime, nullable=False)
    shipped_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)
    status = db.Column(
        db.Enum(ShipmentStatus),
        default=ShipmentStatus.WAITING_FOR_PICKUP,
        nullable=False)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False)

    process_by_staff = db.relationship(
        'User', foreign_keys=[process_by_staff_id])

    def __repr__(self):
        return f'<Shipment {self.id} for order {self.order_id}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(
        db.Integer,
        db.ForeignKey(
            'users.id',
            ondelete='SET NULL'),
        nullable=True)
    actor_role = db.Column(db.String(20), nullable=False)
    # e.g., ORDER_CREATE, PAYMENT_UPDATE, SHIPMENT_PROVISION
    action = db.Column(db.String(100), nullable=False)
    # ORDER, PAYMENT, SHIPMENT
    target_type = db.Column(db.String(50), nullable=True)
    target_id = db.Column(db.Integer, nullable=True)
    ip = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    # JSON format key field snapshot
    payload_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True)

    actor = db.relationship('User', foreign_keys=[actor_id])

    def set_payload(self, data):
        self.payload_json = json.dumps(data, ensure_ascii=False, default=str)

    def get_payload(self):
        if self.payload_json:
            return json.loads(self.payload_json)
        return {}

    def __repr__(self):
        return f'<AuditLog {self.id} action={self.action}>'

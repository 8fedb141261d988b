import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or (
        'dev-secret-key-change-in-production'
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        'sqlite:///orderflow.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    MAJOR_EVENTS_LOG_FILE = os.environ.get(
        'MAJOR_EVENTS_LOG_FILE', 'major_events.log')

    # Pagination configuration
    ITEMS_PER_PAGE = 20

    # Checkout pricing. Shipping fee is flat until a carrier quote exists.
    ORDER_SHIPPING_FEE = os.environ.get('ORDER_SHIPPING_FEE', '0')
    DEFAULT_CURRENCY_UNIT = os.environ.get('DEFAULT_CURRENCY_UNIT', 'VND')

    # Shipment estimates (days from provisioning time)
    DEFAULT_CARRIER = os.environ.get('DEFAULT_CARRIER', 'Giao hàng nhanh')
    SHIPMENT_SHIP_OFFSET_DAYS = int(
        os.environ.get('SHIPMENT_SHIP_OFFSET_DAYS', '2'))
    SHIPMENT_DELIVERY_OFFSET_DAYS = int(
        os.environ.get('SHIPMENT_DELIVERY_OFFSET_DAYS', '1'))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    LOG_FILE = None
    MAJOR_EVENTS_LOG_FILE = None

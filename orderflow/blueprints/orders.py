from flask import Blueprint, request, jsonify
from orderflow.extensions import db
from orderflow.services import checkout as checkout_service
from orderflow.blueprints.serializers import (
    order_item_to_dict,
    order_to_dict,
    payment_to_dict,
    shipment_to_dict)
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('orders', __name__)


@bp.route('/api/orders/checkout', methods=['POST'])
def checkout():
    data = request.get_json(silent=True) or {}
    checkout_request = checkout_service.build_checkout_request(data)

    order = checkout_service.create_order(db.session, checkout_request)

    return jsonify(order_to_dict(order)), 201


@bp.route('/api/orders', methods=['GET'])
def order_list():
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', None, type=int)

    result = checkout_service.list_orders(page=page, per_page=per_page)
    result['items'] = [
        order_to_dict(order, detail=False) for order in result['items']
    ]
    return jsonify(result)


@bp.route('/api/orders/<int:order_id>', methods=['GET'])
def order_detail(order_id):
    order = checkout_service.get_order_detail(db.session, order_id)
    return jsonify(order_to_dict(order))


@bp.route('/api/orders/<int:order_id>/items', methods=['GET'])
def order_items(order_id):
    items = checkout_service.list_order_items(db.session, order_id)
    return jsonify({'items': [order_item_to_dict(i) for i in items]})


@bp.route('/api/orders/<int:order_id>/shipments', methods=['GET'])
def order_shipments(order_id):
    shipments = checkout_service.list_order_shipments(db.session, order_id)
    return jsonify({'shipments': [shipment_to_dict(s) for s in shipments]})


@bp.route('/api/orders/<int:order_id>/payment', methods=['GET'])
def order_payment(order_id):
    payment = checkout_service.get_order_payment(db.session, order_id)
    return jsonify({'payment': payment_to_dict(payment)})

from flask import Blueprint, request, jsonify
from orderflow.extensions import db
from orderflow.services import payments as payment_service
from orderflow.services.errors import PaymentValidationError
from orderflow.blueprints.serializers import payment_to_dict, shipment_to_dict
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('payments', __name__)


@bp.route('/api/payments', methods=['GET'])
def payment_list():
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', None, type=int)

    result = payment_service.list_payments(page=page, per_page=per_page)
    result['items'] = [payment_to_dict(p) for p in result['items']]
    return jsonify(result)


@bp.route('/api/payments/<int:payment_id>', methods=['GET'])
def payment_detail(payment_id):
    payment = payment_service.get_payment(db.session, payment_id)
    return jsonify(payment_to_dict(payment))


@bp.route('/api/payments/<int:payment_id>', methods=['PATCH'])
def update_payment(payment_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise PaymentValidationError('Request body must be a JSON object')
    carrier = data.pop('carrier', None)
    if not data:
        raise PaymentValidationError('Nothing to update')

    payment = payment_service.update_payment(
        db.session, payment_id, data, carrier=carrier)

    return jsonify({
        'payment': payment_to_dict(payment),
        'shipments': [shipment_to_dict(s) for s in payment.order.shipments],
    })

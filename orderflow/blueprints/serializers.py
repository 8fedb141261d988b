from orderflow.utils import datetime_to_json, decimal_to_json


def address_to_dict(address):
    if address is None:
        return None
    return {
        'id': address.id,
        'user_id': address.user_id,
        'street': address.street,
        'ward': address.ward,
        'district': address.district,
        'province': address.province,
        'zip_code': address.zip_code,
        'country': address.country,
    }


def order_item_to_dict(item):
    return {
        'id': item.id,
        'order_id': item.order_id,
        'product_variant_id': item.product_variant_id,
        'quantity': item.quantity,
        'unit_price': decimal_to_json(item.unit_price),
        'total_price': decimal_to_json(item.total_price),
        'discount_value': decimal_to_json(item.discount_value),
        'currency_unit': item.currency_unit,
    }


def payment_to_dict(payment):
    if payment is None:
        return None
    return {
        'id': payment.id,
        'order_id': payment.order_id,
        'transaction_id': payment.transaction_id,
        'payment_method': payment.payment_method.value,
        'amount': decimal_to_json(payment.amount),
        'status': payment.status.value,
        'payment_date': datetime_to_json(payment.payment_date),
        'currency_unit': payment.currency_unit,
    }


def shipment_to_dict(shipment):
    return {
        'id': shipment.id,
        'order_id': shipment.order_id,
        'process_by_staff_id': shipment.process_by_staff_id,
        'carrier': shipment.carrier,
        'tracking_number': shipment.tracking_number,
        'estimated_ship_date': datetime_to_json(shipment.estimated_ship_date),
        'estimated_delivery': datetime_to_json(shipment.estimated_delivery),
        'shipped_at': datetime_to_json(shipment.shipped_at),
        'delivered_at': datetime_to_json(shipment.delivered_at),
        'status': shipment.status.value,
    }


def order_to_dict(order, detail=True):
    data = {
        'id': order.id,
        'user_id': order.user_id,
        'shipping_address_id': order.shipping_address_id,
        'process_by_staff_id': order.process_by_staff_id,
        'order_date': datetime_to_json(order.order_date),
        'status': order.status.value,
        'sub_total': decimal_to_json(order.sub_total),
        'shipping_fee': decimal_to_json(order.shipping_fee),
        'discount': decimal_to_json(order.discount),
        'total_amount': decimal_to_json(order.total_amount),
        'currency_unit': order.currency_unit,
        'payment': payment_to_dict(order.payment),
        'shipments': [shipment_to_dict(s) for s in order.shipments],
    }
    if detail:
        data['shipping_address'] = address_to_dict(order.shipping_address)
        data['items'] = [order_item_to_dict(i) for i in order.items]
    return data

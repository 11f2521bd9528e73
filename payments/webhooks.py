import json
import logging

from django.http import HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .razorpay_utils import razorpay_client
from .reconciliation import PaymentReconciler, extract_order_id

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def razorpay_webhook(request):

    try:
        payload = request.body.decode('utf-8')
    except UnicodeDecodeError:
        logger.error("Webhook body is not valid UTF-8")
        return HttpResponse('Invalid payload', status=400)

    signature = request.headers.get('X-Razorpay-Signature', '')
    logger.info(f"Received webhook: {payload[:100]}...")

    if not razorpay_client.verify_webhook_signature(payload, signature):
        logger.warning("Invalid webhook signature")
        return HttpResponse('Invalid signature', status=400)

    try:
        webhook_data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in webhook: {str(e)}")
        return HttpResponse('Invalid JSON', status=400)

    if not isinstance(webhook_data, dict):
        logger.error("Webhook body is not a JSON object")
        return HttpResponse('Invalid JSON', status=400)

    event = webhook_data.get('event', '')
    event_payload = webhook_data.get('payload') or {}

    try:
        order_id = extract_order_id(event_payload)
        logger.info(f"Processing webhook event: {event} (order {order_id})")
        changed = PaymentReconciler.handle_event(event, order_id, event_payload)
    except Exception as e:
        # Non-2xx makes the gateway redeliver
        logger.error(f"Error processing webhook event {event}: {str(e)}", exc_info=True)
        return HttpResponse('Internal error', status=500)

    return HttpResponse('Processed' if changed else 'Acknowledged', status=200)
